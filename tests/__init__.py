"""SalesTrack Test Suite.

Test organization mirrors salestrack/ structure:
    tests/
    ├── conftest.py          # Shared fixtures
    ├── test_core/           # Core utilities tests
    ├── test_db/             # Database, identity and repository tests
    └── test_engine/         # Workflow, analytics and facade tests

Markers:
    - @pytest.mark.slow: Tests taking > 1 second
    - @pytest.mark.database: Tests requiring database
"""
