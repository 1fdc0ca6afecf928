"""Unit tests for individual components in isolation.

Coverage:
    - relay/: Configuration, upstream client, request lifecycle
    - models/: Pydantic validation and serialization
    - parsing/: Attachment classification and PDF handling
    - client/: Conversation state machine and payload assembly
    - knowledge/: Static reference data
"""
