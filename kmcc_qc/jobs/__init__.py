"""
Scheduled jobs for the KMCC QC forecast backend.

- watch_list_digest: posts the month's watch list to Slack
"""

from kmcc_qc.jobs.watch_list_digest import (
    format_watch_list_blocks,
    send_watch_list_digest,
)


__all__ = [
    'format_watch_list_blocks',
    'send_watch_list_digest',
]
