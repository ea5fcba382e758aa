"""
Services module for tournament data.

This module organizes services into:
- sync: Upstream client, envelope normalization and the sync orchestrator
- competition_service: Read-side queries behind the dashboard API
"""
