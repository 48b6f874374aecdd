import logging

from fastapi import APIRouter, Depends

from library_backend.auth import jwt_handler
from library_backend.auth.dependencies import get_current_identity
from library_backend.auth.jwt_handler import Identity

router = APIRouter(tags=['auth'])

logger = logging.getLogger(__name__)


@router.get("/me")
def me(identity: Identity = Depends(get_current_identity)):
    return {"user_id": identity.user_id, "role": identity.role}


@router.post("/logout")
def logout(identity: Identity = Depends(get_current_identity)):
    revoked = jwt_handler.revoke_identity_token(identity)
    logger.info("User %s (%s) logged out", identity.user_id, identity.role)
    return {"success": True, "message": "Logged out", "revoked": revoked}
