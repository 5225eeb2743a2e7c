"""
TestDeck API

FastAPI backend for QA test case and test run management with a forgiving
CSV import pipeline.

Architecture Overview:
- Repository pattern for data access, one typed interface per entity
- SQL backend (SQLAlchemy) or a JSON-file fallback store, chosen by STORAGE_BACKEND
- Dependency injection container wiring repositories into services
- Acting user passed explicitly to every mutating service call (X-User-Id header)

Key Features:
- Projects, sections (folders) and test cases with ordered steps
- CSV import: header-row detection, column mapping, row grouping into cases
- CSV export (UTF-8 BOM, one continuation row per extra step) and JSON backup
- Test runs over a fixed snapshot of cases, per-step and per-device results
- Field-level edit history with step diffs
- Project dashboard: pass rate, defects, 7-day result chart
- Structured logging with structlog

Usage:
1. Optionally create a .env file (DATABASE_URL, STORAGE_BACKEND, LOG_LEVEL, ...)
2. Install: pip install -e .[test]
3. Run the application: python main.py
4. Log in once with the seed admin e-mail: POST /api/v1/auth/login
5. Access API docs at: http://localhost:8000/api/v1/docs

API Endpoints (all under /api/v1):
- POST /auth/login - Resolve a user by e-mail
- GET|POST /projects/ - List or create projects
- GET|PUT|DELETE /projects/{id} - Project detail, update, cascade delete
- GET|POST /projects/{id}/sections - Sections of a project
- GET|POST /projects/{id}/test-cases - Test cases of a project
- GET|PUT|DELETE /test-cases/{id} - Test case detail
- GET /test-cases/{id}/rendered-steps - Steps split into precondition, body, note
- POST /projects/{id}/imports - Open a CSV import session
- POST /imports/{sid}/upload, /imports/{sid}/upload-file - Load CSV text
- PUT /imports/{sid}/mapping, /imports/{sid}/mode - Adjust mapping and mode
- POST /imports/{sid}/back, /imports/{sid}/commit - Leave or finish the import
- GET /projects/{id}/export/csv, /projects/{id}/export/json - Export cases
- GET|POST /projects/{id}/runs, GET|PUT|DELETE /runs/{id} - Test runs
- GET|POST /runs/{id}/results, PUT /runs/{id}/results/steps - Results
- GET /runs/{id}/progress, /runs/{id}/stats, /runs/{id}/report - Run figures
- GET /history/{entity_id}, /history/logs/{id}/step-diff - Audit trail
- GET /projects/{id}/dashboard - Dashboard figures
- GET /health/ - Health check

Architecture Components:

1. Controllers (testdeck/api/routes/):
   - Handle HTTP requests and responses
   - Translate domain errors into HTTP status codes

2. Services (testdeck/services/):
   - Business logic, history logging and the import pipeline
   - Import sessions kept in memory with a sliding expiry

3. Repositories (testdeck/repositories/):
   - Interfaces plus SQL and local JSON implementations

4. Models (testdeck/models/):
   - Pydantic schemas for request/response
   - SQLAlchemy models for database

5. Core (testdeck/core/):
   - Database configuration, dependency injection, errors, session store
"""
