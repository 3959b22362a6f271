# checkin_tracker/schemas/checkin_schema.py
from pydantic import BaseModel, StrictFloat, StrictInt
from typing import Optional, Union

Number = Union[StrictInt, StrictFloat]


class CheckinCreateSchema(BaseModel):
    client_id: Union[StrictInt, str]
    latitude: Number
    longitude: Number
    distance_from_client: Optional[Number] = None
    notes: Optional[str] = None


class ClientOut(BaseModel):
    id: int
    name: str
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    model_config = {"from_attributes": True}
