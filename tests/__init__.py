"""
Test suite for Briefing Desk.

Demonstrates testing patterns for a streaming, tool-augmented LLM service:
- Domain logic tests with no network (MockTransport, FunctionModel, fake providers)
- Resource lifecycle verification (providers closed exactly once)
- API contract tests through the ASGI app
"""
