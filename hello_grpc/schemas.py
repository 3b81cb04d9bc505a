from pydantic import BaseModel


class HelloRequest(BaseModel):
    name: str = ""


class HelloReply(BaseModel):
    message: str = ""


class Void(BaseModel):
    """Carries no data; starts a stream without parameters."""
