"""Firebase Admin wiring used to authenticate dashboard users."""

from __future__ import annotations

import logging
from typing import Any

import firebase_admin
from firebase_admin import auth, credentials

from app.config import Settings, get_settings

logger = logging.getLogger(__name__)

_REJECTED_TOKEN_ERRORS = (
  ValueError,
  auth.InvalidIdTokenError,
  auth.ExpiredIdTokenError,
  auth.RevokedIdTokenError,
  auth.CertificateFetchError,
  auth.UserDisabledError,
)


def _credential(settings: Settings) -> credentials.Base | None:
  # None makes the SDK fall back to application default credentials.
  if settings.firebase_service_account_json_path:
    return credentials.Certificate(settings.firebase_service_account_json_path)
  return None


def initialize_firebase(settings: Settings | None = None) -> bool:
  """Create the default Firebase app once and report whether one is available."""
  if firebase_admin._apps:
    return True

  settings = settings or get_settings()
  project_id = settings.firebase_project_id
  if not project_id:
    logger.warning("FIREBASE_PROJECT_ID is not set; bearer tokens cannot be verified.")
    return False

  try:
    firebase_admin.initialize_app(_credential(settings), {"projectId": project_id})
  except (ValueError, OSError) as exc:
    logger.error("Firebase Admin SDK initialization failed project=%s: %s", project_id, exc)
    return False

  logger.info("Firebase Admin SDK initialized project=%s", project_id)
  return True


def verify_id_token(id_token: str) -> dict[str, Any] | None:
  """Return the claims of a valid Firebase ID token, or None when it cannot be trusted."""
  if not initialize_firebase():
    return None

  try:
    return auth.verify_id_token(id_token)
  except _REJECTED_TOKEN_ERRORS as exc:
    logger.warning("Rejected bearer token: %s", exc)
    return None
