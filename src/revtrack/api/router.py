# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2026 Revtrack Contributors

from fastapi import APIRouter

from revtrack.api.repositories import router as repositories_router

v1_router = APIRouter()
v1_router.include_router(repositories_router)
