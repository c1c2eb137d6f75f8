from fastapi import FastAPI

from cloud_server.schemas.api_models import StatusResponse

app = FastAPI(title="Cloud Server")


@app.get("/", response_model=StatusResponse)
async def root():
    return StatusResponse()
