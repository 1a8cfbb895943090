"""Top-level application package for the receipt splitting API.

This package contains all modules required to run the FastAPI backend
that scans receipts and splits bills: pydantic schemas, the database
models, the receipt validation and reconciliation services, the
allocation engine, and the API routers.

To run the API locally you can execute:

```bash
uvicorn splitter.api.main:app --reload
```

This will serve the FastAPI application on http://localhost:8000 and
automatically reload on code changes. The default configuration uses
a local SQLite database stored in ``splitter.db``. You can override
configuration values using environment variables or a ``.env`` file at
the project root.
"""

__all__: list[str] = []  # explicit for linters; populated dynamically elsewhere if needed
