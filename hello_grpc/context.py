import time
from functools import cached_property
from typing import List, Optional, Tuple

import grpc
from google.protobuf.message_factory import GetMessageClass


class ServiceContext:
    def __init__(self, grpc_context: grpc.aio.ServicerContext, method, method_descriptor):
        self.grpc_context = grpc_context
        self.service_method = method
        self.method_descriptor = method_descriptor
        self._start_time = time.monotonic()
        self._metadata: dict[str, str] = {}

    @cached_property
    def input_type(self):
        return GetMessageClass(self.method_descriptor.input_type)

    @cached_property
    def output_type(self):
        return GetMessageClass(self.method_descriptor.output_type)

    @property
    def elapsed_time(self) -> int:
        """Milliseconds since the call reached the handler."""
        return int((time.monotonic() - self._start_time) * 1000)

    @property
    def metadata(self) -> dict[str, str]:
        if not self._metadata:
            self._metadata = dict(self.grpc_context.invocation_metadata() or ())
        return self._metadata

    def time_remaining(self) -> Optional[float]:
        return self.grpc_context.time_remaining()

    def invocation_metadata(self) -> List[Tuple[str, str]]:
        return self.grpc_context.invocation_metadata()

    def peer(self) -> str:
        return self.grpc_context.peer()

    def cancelled(self) -> bool:
        return self.grpc_context.cancelled()

    def abort(self, code: grpc.StatusCode, details: str, trailing_metadata=()):
        return self.grpc_context.abort(code, details, trailing_metadata)

    def set_code(self, code: grpc.StatusCode):
        return self.grpc_context.set_code(code)

    def set_details(self, details: str):
        return self.grpc_context.set_details(details)
