import logging
from typing import Optional

import firebase_admin
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from firebase_admin import auth as firebase_auth
from firebase_admin import credentials as firebase_credentials
from firebase_admin import exceptions as firebase_exceptions
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from .config import FIREBASE_PROJECT_ID
from .database import get_db
from .models import Salon

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def get_firebase_app():
    """Initialize Firebase Admin SDK (only once)"""
    try:
        return firebase_admin.get_app()
    except ValueError:
        try:
            cred = firebase_credentials.ApplicationDefault()
            app = firebase_admin.initialize_app(cred, {"projectId": FIREBASE_PROJECT_ID})
            logger.info("Firebase Admin initialized with default credentials")
        except Exception:
            # Token verification only needs the project ID
            app = firebase_admin.initialize_app(options={"projectId": FIREBASE_PROJECT_ID})
            logger.info("Firebase Admin initialized with project ID only")
        return app


async def verify_firebase_token(token: str) -> dict:
    """Verify a Firebase ID token and return its decoded claims"""
    if not FIREBASE_PROJECT_ID:
        logger.error("❌ FIREBASE_PROJECT_ID not configured")
        raise HTTPException(status_code=500, detail="Firebase not configured")

    app = get_firebase_app()
    try:
        return await run_in_threadpool(firebase_auth.verify_id_token, token, app)
    except (ValueError, firebase_auth.InvalidIdTokenError) as e:
        logger.warning(f"⚠️ Rejected Firebase token: {e}")
        raise HTTPException(status_code=401, detail="Invalid or expired token") from e
    except firebase_exceptions.FirebaseError as e:
        logger.error(f"❌ Firebase token verification failed: {e}")
        raise HTTPException(status_code=401, detail="Authentication failed") from e


async def get_current_salon(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Salon:
    """Resolve the salon owned by the Firebase user behind the bearer token"""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated")

    token = credentials.credentials

    if len(token.split(".")) != 3:
        logger.warning(f"⚠️ Malformed token received, length: {len(token)}")
        raise HTTPException(
            status_code=401, detail="Invalid token format. Expected a valid JWT token."
        )

    decoded_token = await verify_firebase_token(token)
    firebase_uid = decoded_token.get("uid") or decoded_token.get("sub")
    if not firebase_uid:
        logger.error(f"❌ Token missing user ID claim. Claims: {list(decoded_token.keys())}")
        raise HTTPException(status_code=401, detail="Invalid token claims")

    salon = db.query(Salon).filter(Salon.owner_uid == firebase_uid).first()
    if not salon:
        logger.warning(f"⚠️ No salon linked to Firebase user {firebase_uid}")
        raise HTTPException(status_code=403, detail="No salon is linked to this account")

    logger.debug(f"✅ Authenticated salon {salon.id} ({salon.name})")
    return salon
