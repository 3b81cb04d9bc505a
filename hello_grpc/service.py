import asyncio
import inspect
from enum import Enum
from pathlib import Path
from typing import (
    AsyncGenerator,
    AsyncIterator,
    Callable,
    Dict,
    Optional,
    Sequence,
    Type,
    TypeVar,
    Union,
)

from google.protobuf.message import Message
from logzero import logger
from pydantic import BaseModel

from hello_grpc.context import ServiceContext
from hello_grpc.middleware import (
    Middleware,
    ServerErrorMiddleware,
    ServerStreamingErrorMiddleware,
    build_middleware_stack,
)
from hello_grpc.utils import (
    dict_to_message,
    get_param_annotation_model,
    get_typed_signature,
    import_proto_file,
    message_to_pydantic,
    message_to_str,
    pydantic_to_message,
    snake_to_camel,
)

T = TypeVar("T")
R = TypeVar("R")


class MethodMode(Enum):
    UNARY_UNARY = "unary_unary"
    UNARY_STREAM = "unary_stream"


class BaseMethod:
    mode: MethodMode

    def __init__(
        self,
        endpoint: Callable,
        *,
        name: Optional[str] = None,
        request_model: Optional[Type[BaseModel]] = None,
        response_model: Optional[Type[BaseModel]] = None,
    ):
        self.name = name or snake_to_camel(endpoint.__name__)
        self.full_name = self.name
        self.endpoint = endpoint
        self.request_model = request_model
        self.response_model = response_model
        endpoint_signature = get_typed_signature(self.endpoint)
        if not (0 < len(endpoint_signature.parameters) <= 2):
            raise NotImplementedError("service method only supports 2 parameters")
        request, *keys = endpoint_signature.parameters.keys()
        self.request_param = endpoint_signature.parameters[request]
        self.context_param = endpoint_signature.parameters[keys[0]] if keys else None
        if self.request_param.annotation is not inspect.Signature.empty:
            self.request_model = self.request_model or get_param_annotation_model(
                self.request_param.annotation
            )
        if endpoint_signature.return_annotation is not inspect.Signature.empty:
            self.response_model = self.response_model or get_param_annotation_model(
                endpoint_signature.return_annotation, self.is_response_iterable
            )
        for model in (self.request_model, self.response_model):
            if model is not None and not (
                inspect.isclass(model) and issubclass(model, BaseModel)
            ):
                raise ValueError(f"{self.name}: {model!r} must be a BaseModel subclass")

    @property
    def is_response_iterable(self):
        return self.mode is MethodMode.UNARY_STREAM

    def solve_params(self, request, context):
        values = {}
        if self.context_param:
            values[self.context_param.name] = context
        if self.request_model:
            values[self.request_param.name] = message_to_pydantic(
                request, self.request_model
            )
        else:
            values[self.request_param.name] = request
        return values

    def serialize_response(self, response, context):
        if isinstance(response, Message):
            return response
        if self.response_model:
            validated_response = self.response_model.model_validate(response)
            return pydantic_to_message(validated_response, context.output_type)
        if isinstance(response, BaseModel):
            return pydantic_to_message(response, context.output_type)
        if isinstance(response, dict):
            return dict_to_message(response, context.output_type)
        return response


class UnaryUnaryMethod(BaseMethod):
    mode = MethodMode.UNARY_UNARY

    async def __call__(self, request: Message, context: ServiceContext) -> Message:
        values = self.solve_params(request, context)
        result = await self.endpoint(**values)
        response = self.serialize_response(result, context)
        logger.info(
            f"GRPC invoke {self.full_name}({message_to_str(request)}) [OK] {context.elapsed_time} ms"
        )
        return response


class UnaryStreamMethod(BaseMethod):
    mode = MethodMode.UNARY_STREAM

    async def __call__(
        self, request: Message, context: ServiceContext
    ) -> AsyncGenerator[Message, None]:
        values = self.solve_params(request, context)
        count = 0
        try:
            async for response in self.endpoint(**values):
                yield self.serialize_response(response, context)
                count += 1
        except asyncio.CancelledError:
            logger.info(
                f"GRPC invoke {self.full_name}({message_to_str(request)}) [Cancelled] {count} messages {context.elapsed_time} ms"
            )
            raise
        logger.info(
            f"GRPC invoke {self.full_name}({message_to_str(request)}) [OK] {count} messages {context.elapsed_time} ms"
        )


MethodType = Union[UnaryUnaryMethod, UnaryStreamMethod]


class Service:
    """A gRPC service whose messages and methods are declared by a proto file."""

    def __init__(self, name: str, proto: str = ""):
        """
        Args:
            name: your grpc service name.
            proto: grpc proto file path.
        """
        if proto and not proto.endswith(".proto"):
            raise ValueError("Service proto must end with '.proto'")
        self.name: str = name
        self.proto: str = proto
        self.methods: Dict[str, MethodType] = {}
        self.grpc_servicer = None

    @property
    def interface_name(self):
        return f"{self.name}Servicer"

    @property
    def full_name(self):
        return f"{self.proto}:{self.name}"

    def __str__(self):
        return f"{self.__class__.__name__}(name={self.full_name})"

    def copy(self):
        return self.__class__(self.name, self.proto)

    def import_pb_modules(self):
        return import_proto_file(Path(self.proto))

    def add_method(
        self,
        endpoint: Callable,
        *,
        name: Optional[str] = None,
        method_class: Type[MethodType] = UnaryUnaryMethod,
        **kwargs,
    ) -> MethodType:
        method = method_class(name=name, endpoint=endpoint, **kwargs)
        self.methods[method.name] = method
        return method

    def unary_unary(
        self,
        name: Optional[str] = None,
        *,
        request_model: Optional[Type[BaseModel]] = None,
        response_model: Optional[Type[BaseModel]] = None,
    ):
        def decorator(endpoint: Callable[[T], R]) -> Callable[[T], R]:
            self.add_method(
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
        def decorator(
            endpoint: Callable[[T], AsyncIterator[R]],
        ) -> Callable[[T], AsyncIterator[R]]:
            self.add_method(
                name=name,
                endpoint=endpoint,
                method_class=UnaryStreamMethod,
                request_model=request_model,
                response_model=response_model,
            )
            return endpoint

        return decorator

    def add_to_server(
        self,
        server,
        middlewares: Optional[Sequence[Middleware]] = None,
        server_streaming_middlewares: Optional[Sequence[Middleware]] = None,
    ):
        if not self.methods:
            logger.info(f"{self} add_to_server [Ignored] -> no methods")
            return None

        pb2, pb2_grpc = self.import_pb_modules()
        # built per bind so each server sees the middleware registered so far
        self.grpc_servicer = make_grpc_service_from_methods(
            pb2,
            self.name,
            getattr(pb2_grpc, self.interface_name),
            self.methods,
            middlewares=list(middlewares or [ServerErrorMiddleware()]),
            server_streaming_middlewares=list(
                server_streaming_middlewares or [ServerStreamingErrorMiddleware()]
            ),
        )
        pb2_grpc_add_func = getattr(pb2_grpc, f"add_{self.interface_name}_to_server")
        pb2_grpc_add_func(self.grpc_servicer(), server)
        logger.info(f"{self} add_to_server success")


def make_grpc_service_from_methods(
    pb2,
    service_name,
    interface_class,
    methods: Dict[str, MethodType],
    middlewares: Sequence[Middleware] = (),
    server_streaming_middlewares: Sequence[Middleware] = (),
):
    def create_method(name: str, method: MethodType):
        if name not in service_descriptor.methods_by_name:
            raise RuntimeError(f"Method '{name}' not found")
        method_descriptor = service_descriptor.methods_by_name[name]
        method.full_name = method_descriptor.full_name
        if method.is_response_iterable:
            handler = build_middleware_stack(server_streaming_middlewares, method)

            async def service_iterable_method(self, request, context):
                srv_context = ServiceContext(context, method, method_descriptor)
                async for response in handler(request, srv_context):
                    yield response

            service_iterable_method.__name__ = method_descriptor.name
            return service_iterable_method
        else:
            handler = build_middleware_stack(middlewares, method)

            async def service_method(self, request, context):
                srv_context = ServiceContext(context, method, method_descriptor)
                return await handler(request, srv_context)

            service_method.__name__ = method_descriptor.name
            return service_method

    service_descriptor = pb2.DESCRIPTOR.services_by_name[service_name]
    return type(
        service_name,
        (interface_class,),
        {name: create_method(name, method) for name, method in methods.items()},
    )
