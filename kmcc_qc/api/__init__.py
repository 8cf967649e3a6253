"""
API package for the KMCC QC forecast backend.

Routers:
- predictions: /predictions, /predictions/agents, /predictions/watch-list,
  /predictions/centers
"""

from kmcc_qc.api.predictions import router as predictions_router


__all__ = ['predictions_router']
