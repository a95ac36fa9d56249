from __future__ import annotations


class DataSourceError(RuntimeError):
    """An underlying ride/driver/user/rating query failed (timeout, connection loss, ...).

    Raised by data source adapters and propagated unmodified out of the public
    dashboard operations. Nothing is cached when this is raised.
    """
