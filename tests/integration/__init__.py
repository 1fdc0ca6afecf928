"""Integration tests for components working together as a system.

Coverage:
    - Relay HTTP contract through the real FastAPI app
    - Conversation client talking to the app over ASGI

The upstream provider is a recording stub; everything else is real.
"""
