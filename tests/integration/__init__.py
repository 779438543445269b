"""
tests/integration/
~~~~~~~~~~~~~~~~~~
Integration tests that call the real Air France/KLM API.

These tests are SKIPPED by default. To run them:

    INTEGRATION_TESTS=1 AFKLM_API_KEY=... pytest tests/integration/ -v

Rate Limit Considerations:
- The open-data plan allows roughly one call per second per key and a small
  daily quota; keep these tests few and cheap.
"""
