"""
Slack watch-list digest job for the KMCC QC forecast backend.

Posts the month's watch list (groups and agents with at least one reason) to
a Slack channel through an incoming webhook, formatted with Block Kit.

Environment Requirements:
- SLACK_WEBHOOK_URL: Slack incoming webhook URL. Without it the job is
  skipped.

Usage:
    # Digest for the current month
    result = await send_watch_list_digest()

    # Digest for a given month
    result = await send_watch_list_digest(month="2026-01")

The job never raises: every outcome is described by the returned dict.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from slack_sdk.webhook import WebhookClient

from kmcc_qc.core.config import get_settings
from kmcc_qc.core.warehouse import get_warehouse
from kmcc_qc.models import AgentPrediction, GroupPrediction, RiskLevel
from kmcc_qc.services.predictions import build_watch_list, parse_month
from kmcc_qc.services.watch_list import agent_watch_headline


logger = logging.getLogger(__name__)


# Entries listed per section; the rest is summarized as a count
MAX_LISTED_GROUPS = 10
MAX_LISTED_AGENTS = 10

RISK_EMOJI = {
    RiskLevel.LOW: ":large_green_circle:",
    RiskLevel.MEDIUM: ":large_yellow_circle:",
    RiskLevel.HIGH: ":large_orange_circle:",
    RiskLevel.CRITICAL: ":red_circle:",
}


# =============================================================================
# Message Formatting
# =============================================================================

def _group_line(group: GroupPrediction) -> str:
    emoji = RISK_EMOJI[group.overallRiskLevel]
    attitude = group.attitudePrediction
    ops = group.processPrediction
    reasons = ", ".join(group.watchListReason)
    return (
        f"{emoji} *{group.center} {group.service}/{group.channel}* "
        f"태도 {attitude.currentRate:.2f}%→{attitude.predictedRate:.2f}% "
        f"(목표 {attitude.targetRate:.1f}%), "
        f"오상담 {ops.currentRate:.2f}%→{ops.predictedRate:.2f}% "
        f"(목표 {ops.targetRate:.1f}%)\n    {reasons}"
    )


def _agent_line(agent: AgentPrediction) -> str:
    emoji = RISK_EMOJI[agent.riskLevel]
    errors = ", ".join(f"{e.name} {e.count}건" for e in agent.mainErrors)
    line = (
        f"{emoji} *{agent.agentName or agent.agentId}* ({agent.center} {agent.group}) "
        f"{agent_watch_headline(agent.attitudeRate, agent.processRate)}"
    )
    return f"{line}\n    {errors}" if errors else line


def format_watch_list_blocks(
    month: str,
    groups: Sequence[GroupPrediction],
    agents: Sequence[AgentPrediction],
) -> List[Dict[str, Any]]:
    """
    Format the watch list as Slack Block Kit blocks.

    Structure:
    1. Header with the month
    2. Counts of watched groups and agents
    3. Watched groups (up to MAX_LISTED_GROUPS)
    4. Watched agents (up to MAX_LISTED_AGENTS)
    5. Context footer

    Args:
        month: Month in YYYY-MM format.
        groups: Groups enrolled on the watch list.
        agents: Agents enrolled on the watch list.

    Returns:
        List of Block Kit block dicts.
    """
    blocks: List[Dict[str, Any]] = [
        {
            "type": "header",
            "text": {
                "type": "plain_text",
                "text": f"QC 집중관리 대상 - {month}",
                "emoji": True,
            },
        },
        {
            "type": "section",
            "text": {
                "type": "mrkdwn",
                "text": f"*그룹* {len(groups)}개 | *상담사* {len(agents)}명",
            },
        },
        {"type": "divider"},
    ]

    if groups:
        lines = [_group_line(g) for g in groups[:MAX_LISTED_GROUPS]]
        if len(groups) > MAX_LISTED_GROUPS:
            lines.append(f"_외 {len(groups) - MAX_LISTED_GROUPS}개 그룹_")
        blocks.append({
            "type": "section",
            "text": {"type": "mrkdwn", "text": "*그룹*\n" + "\n".join(lines)},
        })

    if agents:
        lines = [_agent_line(a) for a in agents[:MAX_LISTED_AGENTS]]
        if len(agents) > MAX_LISTED_AGENTS:
            lines.append(f"_외 {len(agents) - MAX_LISTED_AGENTS}명_")
        blocks.append({
            "type": "section",
            "text": {"type": "mrkdwn", "text": "*상담사*\n" + "\n".join(lines)},
        })

    if not groups and not agents:
        blocks.append({
            "type": "section",
            "text": {"type": "mrkdwn", "text": ":white_check_mark: 집중관리 대상이 없습니다."},
        })

    blocks.append({"type": "divider"})
    blocks.append({
        "type": "context",
        "elements": [
            {
                "type": "mrkdwn",
                "text": "KMCC QC 예측 | 태도 5% / 오상담 6% 초과 상담사, 위험 그룹 기준",
            }
        ],
    })

    return blocks


# =============================================================================
# Job Entry Point
# =============================================================================

async def send_watch_list_digest(
    month: Optional[str] = None,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Build the month's watch list and post it to Slack.

    Args:
        month: Month in YYYY-MM format (default: month of today).
        today: Reference date for the month progress (default: date.today()).

    Returns:
        Dict with:
        - success: True if the digest was sent or skipped
        - skipped: True if no webhook is configured
        - reason: Reason for skip (if skipped)
        - month: The digest month
        - group_count / agent_count: Watched dimensions (if sent)
        - error: Error message (if failed)
    """
    settings = get_settings()
    reference_date = today or date.today()
    target_month = parse_month(month, reference_date)

    if not settings.slack_webhook_url:
        logger.info("SLACK_WEBHOOK_URL not configured, skipping watch-list digest")
        return {
            'success': True,
            'skipped': True,
            'reason': 'SLACK_WEBHOOK_URL not configured',
            'month': target_month,
        }

    try:
        warehouse = await get_warehouse()
        watch_list = await build_watch_list(warehouse, settings, target_month, reference_date)
    except Exception as e:
        logger.error(f"Failed to build watch list for {target_month}: {e}", exc_info=True)
        return {
            'success': False,
            'error': f'Failed to build watch list: {str(e)}',
            'month': target_month,
        }

    blocks = format_watch_list_blocks(target_month, watch_list.groups, watch_list.agents)

    try:
        client = WebhookClient(settings.slack_webhook_url)
        response = client.send(blocks=blocks)
    except Exception as e:
        logger.error(f"Failed to send watch-list digest: {e}", exc_info=True)
        return {
            'success': False,
            'error': f'Failed to send Slack message: {str(e)}',
            'month': target_month,
        }

    if response.status_code != 200:
        return {
            'success': False,
            'error': f'Slack API returned status {response.status_code}: {response.body}',
            'month': target_month,
        }

    logger.info(
        f"Sent watch-list digest for {target_month}: "
        f"{len(watch_list.groups)} groups, {len(watch_list.agents)} agents"
    )
    return {
        'success': True,
        'month': target_month,
        'group_count': len(watch_list.groups),
        'agent_count': len(watch_list.agents),
    }
