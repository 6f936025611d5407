"""Push ID endpoints: generate, decode, hash."""

from fastapi import APIRouter, HTTPException

from models import HashRequest, HashResponse, NewIDRequest, PushIDObject
from utils.hashing import MIN_LENGTH
from utils.logging_ import logger
from utils.push_id import InvalidPushIDError, get_codec

router = APIRouter()


@router.post("/api/ids", response_model=PushIDObject)
async def new_id(request: NewIDRequest):
    """Generate a push ID.

    With `data`, the random part is a hash of it and the ID is
    deterministic for a given time.
    """
    options = {
        "time": request.time,
        "stub": request.stub,
        "length": request.length,
        "randomness": request.randomness,
    }
    # data=null is valid input to hash, so presence matters, not value
    if "data" in request.model_fields_set:
        options["data"] = request.data

    try:
        obj = get_codec().new_obj(**options)
    except (TypeError, ValueError) as e:
        raise HTTPException(status_code=422, detail=str(e))

    logger.debug(f"new_id: {obj.id}")
    return obj


@router.get("/api/ids/previous", response_model=PushIDObject)
async def previous_id():
    """Return the last push ID this service generated."""
    obj = get_codec().previous_obj()
    if obj is None:
        raise HTTPException(status_code=404, detail="No push ID generated yet")
    return obj


@router.post("/api/ids/hash", response_model=HashResponse)
async def hash_data(request: HashRequest):
    """Deterministic hash of any JSON value over the push ID alphabet."""
    length = max(MIN_LENGTH, request.length)
    try:
        value = get_codec().hash(request.data, length)
    except TypeError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return HashResponse(hash=value, length=length)


@router.get("/api/ids/{push_id}", response_model=PushIDObject)
async def decode_id(push_id: str):
    """Decode a push ID into time, stub and random part."""
    try:
        return get_codec().decode_id_strict(push_id)
    except InvalidPushIDError as e:
        logger.warning(f"decode_id: rejected {push_id!r}: {e}")
        raise HTTPException(status_code=422, detail=str(e))
