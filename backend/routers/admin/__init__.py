"""
Admin Router - Support Desk Administration API

Provides endpoints for AI agent settings, API key validation, archived
chat review, the activity log and runtime configuration.
Protected by bearer token authentication (ADMIN_TOKEN).
"""

import logging

from fastapi import APIRouter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

# Re-export ConfigUpdate for any external consumers
from .models import ConfigUpdate

# Import all sub-modules to register their routes on the shared router
from . import ai_agent
from . import chats
from . import activity
from . import status
