"""FIP Assist - chat assistant for Feline Infectious Peritonitis case review.

Combines FastAPI for the LLM relay, httpx for upstream calls, NiceGUI for
the chat interface, and Pydantic for data validation.

Components:
    - api: HTTP relay endpoint
    - relay: Request validation, credential sourcing, upstream error mapping
    - client: Conversation state and relay requests
    - knowledge: Static FIP reference data for the prompt
    - parsing: Image and PDF attachment encoding
    - ui: Web interface for chat interactions
    - models: Message and request schemas
"""

__version__ = "0.1.0"
