import functools
import typing

import grpc
from google.protobuf.message import Message
from logzero import logger

from hello_grpc.context import ServiceContext
from hello_grpc.exceptions import RPCException
from hello_grpc.utils import message_to_str

Middleware = typing.Callable[..., typing.Any]


async def _handle_error(
    exc: Exception,
    request: typing.Union[Message, typing.AsyncIterable[Message]],
    context: ServiceContext,
) -> None:
    if isinstance(exc, grpc.aio.AbortError):
        return
    if isinstance(exc, RPCException):
        logger.warning(
            f"GRPC invoke {context.service_method.full_name}({message_to_str(request)}) [Abort] -> {exc!r}"
        )
        await context.abort(exc.code, exc.detail, exc.trailing_metadata or ())
        return
    logger.exception(
        f"GRPC invoke {context.service_method.full_name}({message_to_str(request)}) [Err] -> {exc!r}"
    )
    context.set_code(grpc.StatusCode.INTERNAL)
    context.set_details(str(exc))


class ServerErrorMiddleware:
    async def __call__(
        self,
        call_next,
        request: typing.Union[Message, typing.AsyncIterable[Message]],
        context: ServiceContext,
    ):
        try:
            return await call_next(request, context)
        except Exception as e:
            await _handle_error(e, request, context)
            raise


class ServerStreamingErrorMiddleware:
    async def __call__(
        self,
        call_next,
        request: typing.Union[Message, typing.AsyncIterable[Message]],
        context: ServiceContext,
    ) -> typing.AsyncGenerator[Message, None]:
        try:
            async for response in call_next(request, context):
                yield response
        except Exception as e:
            await _handle_error(e, request, context)
            raise


def build_middleware_stack(middlewares: typing.Sequence[Middleware], handler):
    """Wrap ``handler`` so the first middleware in the list runs outermost."""
    call_next = handler
    for middleware in reversed(middlewares):
        call_next = functools.partial(middleware, call_next)
    return call_next
