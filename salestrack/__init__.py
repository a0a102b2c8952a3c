"""SalesTrack Source Package.

Local-first sales pipeline tracker: clients, prospects, sales,
phone-call logs, follow-ups and analytics on one on-device SQLite store.

Layers:
    - core: Configuration, logging, exceptions, phone, tasks
    - db: Database, models, identity, repositories
    - engine: Workflows (conversion, calls, follow-ups), analytics, facade
"""

__version__ = "0.1.0"
