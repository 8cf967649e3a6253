"""
KMCC QC Forecast Backend Package.

FastAPI service layer for the call-center QC dashboard. Forecasts month-end
attitude / ops error rates per service-channel group and per agent, classifies
the risk of missing the monthly target, and enrolls dimensions on the watch
list for manager follow-up.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, BigQuery warehouse client, and dependencies
    - models: Pydantic schemas and enums
    - services: Forecasting engine, watch-list rules, aggregation, pipeline
    - jobs: Scheduled Slack digest
    - sql: Parameterized BigQuery queries
"""

__version__ = "1.0.0"
