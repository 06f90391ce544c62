# Services package init
"""
Voice Memo Backend — Services Layer
=====================================

What:  Business logic between the routes (HTTP) and the database.
How:   Services take an AsyncSession plus the caller's user id, apply the
       business rules, and return response schemas or raise VoiceMemoError
       subclasses. Routes receive them through FastAPI dependencies.

Service Inventory:
    - UserService: signup and login
    - MemoService: owner-scoped memo store
    - CredentialService: encrypted API keys and helper status
    - LLMService (abstract): generation provider interface
    - GeminiService: Google Gemini REST implementation over httpx
"""
