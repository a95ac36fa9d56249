"""Dashboard metrics and alerting services.

- dashboard_service.py (cache-checked public operations)
- metrics_aggregator.py / health.py (snapshot computation)
- alerts_engine.py (rule evaluation)
- mongo_source.py (MongoDB-backed data source)
"""

# No re-exports; import the service module you need directly.
