# routes.py
from fastapi import FastAPI
from controller.faucet_controller import faucet_router


def register_routes(app: FastAPI) -> None:
    """Register & Access control controllers here."""
    app.include_router(faucet_router)
