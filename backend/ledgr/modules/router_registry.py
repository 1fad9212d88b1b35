"""Central router registry for module-oriented composition."""
from __future__ import annotations

from fastapi import FastAPI

from ledgr.routers import email, invoices, profile, public, templates, wallets

ALL_ROUTERS = (
    invoices.router,
    templates.router,
    public.router,
    profile.router,
    profile.settings_router,
    wallets.router,
    wallets.payments_router,
    email.router,
)


def include_all_routers(app: FastAPI) -> None:
    for router in ALL_ROUTERS:
        app.include_router(router)
