"""Public key endpoints for certificate verification."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from chainproof_api.dependencies import get_request_signer
from chainproof_api.ledger.signer import Signer

router = APIRouter(prefix="/v1", tags=["keys"])


@router.get("/keys/jwks.json")
def get_jwks(signer: Signer = Depends(get_request_signer)):
    """Return JSON Web Key Set for certificate QR signatures."""
    return JSONResponse(content={"keys": [signer.get_public_jwk()]})
