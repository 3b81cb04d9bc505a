from pathlib import Path
from typing import AsyncIterator, Optional

import grpc

from hello_grpc.schemas import HelloReply, HelloRequest, Void
from hello_grpc.utils import import_proto_file, message_to_pydantic, pydantic_to_message


class HelloClient:
    """Async client for the ``Hello`` service.

    ```python
    async with HelloClient("127.0.0.1:50051") as client:
        reply = await client.say_hello("from Tests")
        async for reply in client.stream_hello():
            ...
    ```
    """

    def __init__(
        self,
        target: str = "127.0.0.1:50051",
        *,
        proto: str = "hello.proto",
        service_name: str = "Hello",
        timeout: Optional[float] = None,
    ):
        self.target = target
        self.timeout = timeout
        self.pb2, pb2_grpc = import_proto_file(Path(proto))
        self._stub_class = getattr(pb2_grpc, f"{service_name}Stub")
        self._channel: Optional[grpc.aio.Channel] = None
        self._stub = None

    async def __aenter__(self) -> "HelloClient":
        self._channel = grpc.aio.insecure_channel(self.target)
        self._stub = self._stub_class(self._channel)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._channel is not None:
            await self._channel.close()
            self._channel = None
            self._stub = None

    @property
    def stub(self):
        if self._stub is None:
            raise RuntimeError("HelloClient is not connected, use 'async with HelloClient(...)'")
        return self._stub

    async def say_hello(self, name: str) -> HelloReply:
        request = pydantic_to_message(HelloRequest(name=name), self.pb2.HelloRequest)
        response = await self.stub.SayHello(request, timeout=self.timeout)
        return message_to_pydantic(response, HelloReply)

    async def stream_hello(self) -> AsyncIterator[HelloReply]:
        """Iterate the server stream; leaving the loop cancels the call."""
        call = self.stub.StreamHello(pydantic_to_message(Void(), self.pb2.Void))
        try:
            async for response in call:
                yield message_to_pydantic(response, HelloReply)
        finally:
            call.cancel()
