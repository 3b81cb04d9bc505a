import sys
from pathlib import Path
from typing import AsyncIterator

import pytest
from pydantic import BaseModel

from hello_grpc import HelloReply, HelloRequest, utils
from hello_grpc.utils import (
    get_param_annotation_model,
    get_typed_signature,
    import_proto_file,
    message_to_pydantic,
    message_to_str,
    protoc_compile,
    pydantic_to_message,
    snake_to_camel,
)


@pytest.mark.parametrize(
    "name, expected",
    [("say_hello", "SayHello"), ("stream_hello", "StreamHello"), ("ping", "Ping")],
)
def test_snake_to_camel(name, expected):
    assert snake_to_camel(name) == expected


def test_get_typed_signature_resolves_string_annotations():
    async def endpoint(request: "HelloRequest") -> "AsyncIterator[HelloReply]":
        yield

    signature = get_typed_signature(endpoint)
    assert signature.parameters["request"].annotation is HelloRequest
    assert get_param_annotation_model(signature.return_annotation, is_streaming=True) is HelloReply


def test_get_param_annotation_model_for_non_iterable_stream():
    assert get_param_annotation_model(HelloReply, is_streaming=True) is None
    assert get_param_annotation_model(HelloReply) is HelloReply


def test_message_to_str_for_non_messages():
    assert message_to_str("plain") == "'plain'"


def test_protoc_compile_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        protoc_compile(tmp_path / "missing.proto")


def test_import_proto_file_missing_modules(tmp_path):
    proto = tmp_path / "nothing.proto"
    proto.write_text('syntax = "proto3";')
    with pytest.raises(FileNotFoundError):
        import_proto_file(proto)


def test_compile_import_and_convert(tmp_path):
    proto_file = tmp_path / "conversion.proto"
    proto_file.write_text(
        """
        syntax = "proto3";
        package conversion;

        message UserMessage {
            string user_name = 1;
            int32 user_age = 2;
            repeated string tags = 3;
        }

        service Users {
            rpc GetUser (UserMessage) returns (UserMessage);
        }
    """
    )

    protoc_compile(proto_file)
    pb2, pb2_grpc = import_proto_file(proto_file)

    assert import_proto_file(proto_file) == (pb2, pb2_grpc)
    assert sys.modules["conversion_pb2"] is pb2
    assert hasattr(pb2_grpc, "UsersServicer")
    assert hasattr(pb2_grpc, "UsersStub")
    assert hasattr(pb2_grpc, "add_UsersServicer_to_server")

    class UserModel(BaseModel):
        user_name: str
        user_age: int
        tags: list[str]

    message = pb2.UserMessage(user_name="test_user", user_age=25, tags=["a", "b"])
    user = message_to_pydantic(message, UserModel)
    assert user == UserModel(user_name="test_user", user_age=25, tags=["a", "b"])

    proto_message = pydantic_to_message(
        UserModel(user_name="new_user", user_age=30, tags=["c"]), pb2.UserMessage
    )
    assert proto_message.user_name == "new_user"
    assert proto_message.user_age == 30
    assert list(proto_message.tags) == ["c"]
    assert message_to_str(proto_message) == 'user_name: "new_user" user_age: 30 tags: "c"'


def test_protoc_compile_forgets_modules_of_changed_protos(tmp_path):
    proto_file = tmp_path / "rewritten.proto"
    proto_file.write_text('syntax = "proto3";\npackage rewritten;\nmessage Ping { string id = 1; }\n')
    protoc_compile(proto_file)
    modules = import_proto_file(proto_file)

    protoc_compile(proto_file)
    assert utils._proto_modules[proto_file.resolve()] == modules

    proto_file.write_text('syntax = "proto3";\npackage rewritten;\nmessage Ping { int32 id = 1; }\n')
    protoc_compile(proto_file)
    assert proto_file.resolve() not in utils._proto_modules


def test_generated_hello_modules(app, proto_path: Path):
    pb2, _ = import_proto_file(proto_path)
    assert pb2.DESCRIPTOR.package == "hello"
    reply = pydantic_to_message(HelloReply(message="Hello "), pb2.HelloReply)
    assert message_to_pydantic(reply, HelloReply).message == "Hello "
