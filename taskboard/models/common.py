from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: str


class StoreStatus(BaseModel):
    configured: bool
    reachable: bool
    database: str | None = None


class StatusResponse(BaseModel):
    store: StoreStatus
