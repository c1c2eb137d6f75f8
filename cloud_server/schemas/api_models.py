from pydantic import BaseModel


class StatusResponse(BaseModel):
    service: str = "cloud-server"
    status: str = "ok"
