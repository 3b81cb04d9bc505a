from hello_grpc.app import GRPCApp, create_app
from hello_grpc.client import HelloClient
from hello_grpc.context import ServiceContext
from hello_grpc.exceptions import InvalidArgument, RPCException
from hello_grpc.greeter import Greeter
from hello_grpc.randomness import ALPHABET, random_number_between, random_string
from hello_grpc.schemas import HelloReply, HelloRequest, Void
from hello_grpc.service import Service
from hello_grpc.settings import Settings, get_settings

__all__ = [
    "ALPHABET",
    "GRPCApp",
    "Greeter",
    "HelloClient",
    "HelloReply",
    "HelloRequest",
    "InvalidArgument",
    "RPCException",
    "Service",
    "ServiceContext",
    "Settings",
    "Void",
    "create_app",
    "get_settings",
    "random_number_between",
    "random_string",
]
