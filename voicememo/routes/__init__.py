# Routes package init
"""
Voice Memo Backend — API Routes Package
=========================================

What:  HTTP route handlers. Handlers stay thin: pull inputs from the request,
       call one service method, return its result. Status codes for failures
       come from the exception handlers in main.py.

Route Inventory:
    - auth.py:        POST /api/signup, POST /api/login
    - memos.py:       /api/save_memo, /api/get_memos, /api/get_memo/{id},
                      /api/update_memo/{id}, /api/delete_memo/{id},
                      /api/delete_all_memos
    - api_keys.py:    /api/api_keys/*, /api/helper/status
    - generation.py:  /api/transcribe, /api/translate, /api/summary,
                      /api/generate_memo_name (text/plain)
    - health.py:      GET /health
"""
