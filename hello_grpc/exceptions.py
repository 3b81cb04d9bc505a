# -*- coding: utf-8 -*-
from typing import Optional

import grpc
from grpc.aio import Metadata


class RPCException(grpc.RpcError):
    """An error that maps onto a gRPC status when it escapes a handler."""

    def __init__(
        self,
        code: grpc.StatusCode,
        detail: Optional[str] = None,
        trailing_metadata: Optional[Metadata] = None,
    ) -> None:
        if detail is None:
            detail = code.value[1]
        super().__init__(detail)
        self.code = code
        self.detail = detail
        self.trailing_metadata = trailing_metadata

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        return f"{class_name}(code={self.code.value[0]}, detail={self.detail!r})"


class InvalidArgument(RPCException, ValueError):
    def __init__(self, detail: Optional[str] = None) -> None:
        super().__init__(grpc.StatusCode.INVALID_ARGUMENT, detail)
