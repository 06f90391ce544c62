# Security package init
"""
Voice Memo Backend — Security Primitives
==========================================

    - cipher.py:    CredentialCipher (AES-256-GCM for stored third-party keys)
    - tokens.py:    TokenCodec (signed, time-limited bearer tokens)
    - passwords.py: bcrypt password hashing

Cipher and codec take their secrets as constructor arguments. The application
factory builds one of each from settings and keeps them on app.state.
"""
