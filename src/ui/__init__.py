"""NiceGUI interface - thin visualization layer for the FIP chat.

Responsibilities:
    - Chat transcript display with markdown rendering
    - Image and PDF upload with pending-attachment chips
    - API key entry when the relay expects client credentials
    - Send button disabled while a message is in flight

Contains minimal business logic. Delegates to the conversation client,
which talks to the relay over HTTP.
"""
