"""
LLM integration layer.

Responsibilities:
- Manage Groq API configuration and credentials.
- Send a single structured-output request to the ranking model.
- Report transport failures to the caller, which owns the fallback.
"""
