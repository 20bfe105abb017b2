"""usageboard REST API package.

Provides the FastAPI router consumed by the dashboard front-end: the merged
usage report and the API-key mapping CRUD endpoints.

Mount point: /api/
"""
