"""
Top-level router for version 1 of the API.

This router aggregates domain-specific routers (participants, events,
payments, admin) under a unified prefix.  When new domains are
introduced, update this file to include their routers.
"""

from fastapi import APIRouter

from .endpoints import admin, events, participants, payments

router = APIRouter()

router.include_router(participants.router, prefix="/participants", tags=["participants"])
router.include_router(events.router, prefix="/events", tags=["events"])
router.include_router(payments.router, prefix="/payments", tags=["payments"])
router.include_router(admin.router, prefix="/admin", tags=["admin"])
