import random
from typing import AsyncIterator, Callable, Optional

from logzero import logger

from hello_grpc.context import ServiceContext
from hello_grpc.randomness import random_number_between, random_string
from hello_grpc.schemas import HelloReply, HelloRequest, Void
from hello_grpc.service import Service
from hello_grpc.ticker import ticks


class Greeter:
    """Endpoints of the ``Hello`` service.

    ``StreamHello`` draws a string length once per call, then emits a fresh
    random string of that length every ``tick_interval`` seconds until the
    client goes away. Every call builds its own generator from
    ``random_factory``, so concurrent streams never share random state.
    """

    def __init__(
        self,
        *,
        max_length: int = 21,
        tick_interval: float = 1.0,
        random_factory: Callable[[], random.Random] = random.Random,
    ):
        self.max_length = max_length
        self.tick_interval = tick_interval
        self.random_factory = random_factory
        self.active_streams = 0

    async def say_hello(self, request: HelloRequest) -> HelloReply:
        return HelloReply(message="Hello " + request.name)

    async def stream_hello(
        self, request: Void, context: Optional[ServiceContext] = None
    ) -> AsyncIterator[HelloReply]:
        rng = self.random_factory()
        length = random_number_between(0, self.max_length, rng)
        if context is not None:
            logger.debug(f"StreamHello for {context.peer()} emits strings of length {length}")
        self.active_streams += 1
        try:
            async for _ in ticks(self.tick_interval):
                yield HelloReply(message=random_string(length, rng))
        finally:
            self.active_streams -= 1

    def register(self, service: Service) -> Service:
        service.unary_unary()(self.say_hello)
        service.unary_stream()(self.stream_hello)
        return service
