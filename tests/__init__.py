"""Test package for FIP Assist.

Structure:
    - unit/: Individual function and class tests
    - integration/: Relay endpoint and client-to-relay workflows

The upstream provider is always a recording stub (httpx.MockTransport),
so no test needs network access or an API key.
Leverages pytest with pytest-check for soft assertions.
"""
