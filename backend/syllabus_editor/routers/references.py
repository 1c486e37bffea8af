from fastapi import APIRouter, Depends

from .. import actions
from ..schemas import ReferenceValidation, ReferenceValidationRequest
from .auth import User, get_current_user

router = APIRouter(prefix="/references", tags=["references"])


@router.post("/validate", response_model=ReferenceValidation)
async def validate(req: ReferenceValidationRequest, user: User = Depends(get_current_user)):
	return await actions.validate_reference(req.reference_text)
