"""Integration tests for the ballot service.

These tests run the election service against a real PostgreSQL and cover
catalog seeding, concurrent ballot commits, rollback and tallying.

All tests require a reachable PostgreSQL (see docker-compose.yml).
"""
