"""Browser automation modules (Playwright).

``session_manager`` owns the browser instance and enforces a single page;
``navigation`` wraps ``page.goto`` with a wait-strategy fallback.
"""
