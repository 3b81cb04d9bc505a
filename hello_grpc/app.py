# -*- coding: utf-8 -*-
import asyncio
from pathlib import Path
from typing import Callable, Optional, Type

import grpc
from grpc.aio import Server
from logzero import logger
from pydantic import BaseModel

from hello_grpc.greeter import Greeter
from hello_grpc.middleware import (
    Middleware,
    ServerErrorMiddleware,
    ServerStreamingErrorMiddleware,
)
from hello_grpc.proto import ProtoBuilder
from hello_grpc.service import Service, UnaryStreamMethod, UnaryUnaryMethod
from hello_grpc.settings import Settings, get_settings
from hello_grpc.signals import rpc_shutdown, rpc_startup
from hello_grpc.utils import protoc_compile


class GRPCApp(object):
    """
    `GRPCApp` owns the services of a process, renders and compiles their proto
    file, and serves them on a `grpc.aio` server.

    ## Example

    ```python
    app = GRPCApp(service_name="Hello", proto="hello.proto")

    @app.unary_unary()
    async def say_hello(request: HelloRequest) -> HelloReply:
        return HelloReply(message="Hello " + request.name)
    ```
    """

    def __init__(
        self,
        *,
        service_name: str = "Hello",
        proto: str = "hello.proto",
        auto_gen_proto: bool = True,
    ):
        """
        Args:
            service_name: default grpc service name.
            proto: grpc proto file path.
            auto_gen_proto: Whether to render the proto file from the registered models. If not, the proto file is written by hand.
        """
        self.service = Service(name=service_name, proto=proto)
        self._services: dict[str, Service] = {self.service.full_name: self.service}
        self._auto_gen_proto = auto_gen_proto
        self._middlewares: list[Middleware] = [ServerErrorMiddleware()]
        self._server_streaming_middlewares: list[Middleware] = [
            ServerStreamingErrorMiddleware()
        ]
        self._compiled: dict[Path, str] = {}

    def setup(self) -> None:
        """Render and compile every proto file whose services changed since the last call."""
        builders = {}
        for service in self._services.values():
            if not service.methods:
                continue
            path = Path(service.proto)
            if path not in builders:
                builders[path] = ProtoBuilder(package=path.stem)
            builders[path].add_service(service)
        for proto, builder in builders.items():
            content = builder.get_proto().render_proto_file()
            if self._compiled.get(proto) == content:
                continue
            if self._auto_gen_proto:
                proto.parent.mkdir(parents=True, exist_ok=True)
                proto.write_text(content)
                logger.info(f"Created {proto} file success")
            protoc_compile(proto)
            self._compiled[proto] = content

    def add_middleware(self, middleware: Middleware, is_server_streaming: bool = False):
        """Append a ``middleware(call_next, request, context)`` to the unary or streaming chain."""
        if is_server_streaming:
            self._server_streaming_middlewares.append(middleware)
        else:
            self._middlewares.append(middleware)

    def middleware(self, is_server_streaming: bool = False):
        def decorator(func: Callable) -> Callable:
            self.add_middleware(func, is_server_streaming=is_server_streaming)
            return func

        return decorator

    def unary_unary(
        self,
        name: Optional[str] = None,
        *,
        request_model: Optional[Type[BaseModel]] = None,
        response_model: Optional[Type[BaseModel]] = None,
    ):
        def decorator(endpoint: Callable) -> Callable:
            self.service.add_method(
                name=name,
                endpoint=endpoint,
                method_class=UnaryUnaryMethod,
                request_model=request_model,
                response_model=response_model,
            )
            return endpoint

        return decorator

    def unary_stream(
        self,
        name: Optional[str] = None,
        *,
        request_model: Optional[Type[BaseModel]] = None,
        response_model: Optional[Type[BaseModel]] = None,
    ):
        def decorator(endpoint: Callable) -> Callable:
            self.service.add_method(
                name=name,
                endpoint=endpoint,
                method_class=UnaryStreamMethod,
                request_model=request_model,
                response_model=response_model,
            )
            return endpoint

        return decorator

    def run(
        self,
        host: str = "127.0.0.1",
        port: int = 50051,
        server: Optional[Server] = None,
        grace: Optional[float] = None,
    ) -> None:
        try:
            asyncio.run(self.run_async(host=host, port=port, server=server, grace=grace))
        except KeyboardInterrupt:
            logger.info("Interrupted, grpc server stopped")

    async def run_async(
        self,
        host: str = "127.0.0.1",
        port: int = 50051,
        server: Optional[Server] = None,
        grace: Optional[float] = None,
    ) -> None:
        server = grpc.aio.server() if not server else server
        self.add_to_server(server)
        server.add_insecure_port(f"{host}:{port}")
        await server.start()
        logger.info(f"Running grpc on {host}:{port}")
        rpc_startup.send(self, server=server)
        try:
            await server.wait_for_termination()
        finally:
            await server.stop(grace)
            logger.info(f"Stopped grpc on {host}:{port}")
            rpc_shutdown.send(self, server=server)

    def add_service(self, service: Service) -> None:
        if not service.proto:
            service.proto = self.service.proto
        if service.full_name not in self._services:
            self._services[service.full_name] = service.copy()
        self._services[service.full_name].methods.update(service.methods)

    def add_to_server(self, server: Server):
        self.setup()
        for service in self._services.values():
            service.add_to_server(
                server,
                middlewares=self._middlewares,
                server_streaming_middlewares=self._server_streaming_middlewares,
            )


def create_app(settings: Optional[Settings] = None, greeter: Optional[Greeter] = None) -> GRPCApp:
    """Build the application serving the ``Hello`` service."""
    settings = settings or get_settings()
    greeter = greeter or Greeter(
        max_length=settings.max_length, tick_interval=settings.tick_interval
    )
    app = GRPCApp(
        service_name=settings.service_name,
        proto=settings.proto,
        auto_gen_proto=settings.auto_gen_proto,
    )
    greeter.register(app.service)
    return app
