"""
API routes.

- competition: read-only views consumed by the dashboard
- sync: triggers for upstream ingestion plus diagnostic reads
"""
