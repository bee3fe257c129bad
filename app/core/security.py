from __future__ import annotations

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.concurrency import run_in_threadpool

from app.articles.errors import Unauthenticated
from app.core.firebase import verify_id_token

security_scheme = HTTPBearer(auto_error=False)


async def get_current_user_id(token: Annotated[HTTPAuthorizationCredentials | None, Depends(security_scheme)]) -> str:
  """Verify the Firebase ID token and return the caller's uid."""
  if token is None or not token.credentials:
    raise Unauthenticated("Missing bearer token.")

  decoded_claims = await run_in_threadpool(verify_id_token, token.credentials)
  if not decoded_claims:
    raise Unauthenticated("Invalid authentication credentials.")

  firebase_uid = decoded_claims.get("uid")
  if not firebase_uid:
    raise Unauthenticated("Invalid token claims.")

  return str(firebase_uid)
