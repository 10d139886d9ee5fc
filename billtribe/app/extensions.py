"""
extensions.py — Flask extension singletons.

Exposes the in-memory Ledger as a module-level extension object so it can be
imported anywhere without creating circular dependencies.

Pattern:
    1. Create the extension object here (no app attached yet).
    2. Call init_app(app) inside the app factory in app/__init__.py.
    3. Import `store` from here wherever needed and read `store.ledger`.

    from billtribe.app.extensions import store

init_app() gives every app its own fresh Ledger, so each test app instance
starts empty. Do not create a Ledger at import time.

Only routes read `store.ledger` (it needs an application context). Services
receive the Ledger as a plain argument and stay Flask-free.
"""

from __future__ import annotations

from flask import Flask, current_app

from billtribe.app.ledger import Ledger

_EXTENSION_KEY = "billtribe.ledger"


class LedgerStore:

    def __init__(self, app: Flask | None = None) -> None:
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        app.extensions[_EXTENSION_KEY] = Ledger()

    @property
    def ledger(self) -> Ledger:
        """The Ledger bound to the current application."""
        return current_app.extensions[_EXTENSION_KEY]

    def reset(self) -> None:
        """Replaces the current application's Ledger with an empty one."""
        current_app.extensions[_EXTENSION_KEY] = Ledger()


store = LedgerStore()
