# Middleware package init
"""
FlashVault Backend — Middleware Package
=========================================

Middleware Chain:
    Request → [Request ID] → [Access Log] → [GZip] → [CORS] → Route Handler

    - Request ID runs first so every later log line can carry it.
    - The access log wraps the handler, so it sees the final status and the
      user id the access gate stored on request.state.
"""
