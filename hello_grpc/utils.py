# -*- coding: utf-8 -*-
import importlib.util
import inspect
import subprocess
import sys
from collections.abc import AsyncIterable
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple, get_args, get_origin, get_type_hints

from google.protobuf.json_format import Parse, ParseDict
from google.protobuf.message import Message
from google.protobuf.text_format import MessageToString
from logzero import logger

_proto_modules: Dict[Path, Tuple[Any, Any]] = {}


def snake_to_camel(name):
    parts = name.split("_")
    camel_name = "".join(word.capitalize() for word in parts)
    return camel_name


def dict_to_message(data, message_cls):
    return ParseDict(data, message_cls(), ignore_unknown_fields=True)


def message_to_str(message_or_iterator) -> str:
    if isinstance(message_or_iterator, AsyncIterable):
        return "<StreamingMessage(...)>"
    if not isinstance(message_or_iterator, Message):
        return repr(message_or_iterator)
    return MessageToString(message_or_iterator, as_one_line=True, force_colon=True)


def message_to_pydantic(message, pydantic_model):
    """Convert protobuf message to pydantic model"""
    return pydantic_model.model_validate(message, from_attributes=True)


def pydantic_to_message(schema, message_cls):
    """Convert pydantic model to protobuf message"""
    return Parse(schema.model_dump_json(), message_cls(), ignore_unknown_fields=True)


def get_param_annotation_model(annotation, is_streaming=False):
    if annotation is inspect.Signature.empty:
        return None
    if not is_streaming:
        return annotation
    origin_type = get_origin(annotation)
    args = get_args(annotation)
    if origin_type is None or not issubclass(origin_type, AsyncIterable):
        return None
    return args[0] if args else None


def get_typed_signature(call: Callable[..., Any]) -> inspect.Signature:
    """Signature of ``call`` with string annotations resolved against its module."""
    signature = inspect.signature(call)
    hints = get_type_hints(call)
    typed_params = [
        param.replace(annotation=hints.get(param.name, param.annotation))
        for param in signature.parameters.values()
    ]
    return signature.replace(
        parameters=typed_params,
        return_annotation=hints.get("return", signature.return_annotation),
    )


def _generated_pb2(proto_file: Path) -> Path:
    return proto_file.parent / f"{proto_file.stem}_pb2.py"


def _read_or_none(path: Path) -> Optional[bytes]:
    return path.read_bytes() if path.exists() else None


def protoc_compile(proto: Path):
    """
    python -m grpc_tools.protoc --python_out=<dir> --grpc_python_out=<dir> -I<dir> hello.proto

    Generated modules land next to the proto file. Modules already loaded
    by ``import_proto_file`` are forgotten when their generated code changes.
    """
    if not proto.exists():
        raise FileNotFoundError(f"Proto file or directory '{proto}' not found")
    if proto.is_file():
        proto_dir = proto.parent
        proto_files = [proto]
    else:
        proto_dir = proto
        proto_files = sorted(proto_dir.glob("*.proto"))
    previous = {f: _read_or_none(_generated_pb2(f)) for f in proto_files}
    protoc_args = [
        sys.executable,
        "-m",
        "grpc_tools.protoc",
        f"--python_out={proto_dir}",
        f"--grpc_python_out={proto_dir}",
        f"-I{proto_dir}",
        *(str(f) for f in proto_files),
    ]
    status_code = subprocess.call(protoc_args)
    if status_code != 0:
        logger.error(f"Command `{' '.join(protoc_args)}` [Err] {status_code=}")
        raise RuntimeError("Protobuf compilation failed")
    for proto_file, generated in previous.items():
        if _read_or_none(_generated_pb2(proto_file)) != generated:
            _proto_modules.pop(proto_file.resolve(), None)
    logger.info(f"Compiled {proto} success")


def load_module_from_file_location(name, path):
    spec = importlib.util.spec_from_file_location(name, path)
    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    spec.loader.exec_module(module)
    return module


def import_proto_file(proto_path: Path):
    """Load the ``<stem>_pb2`` and ``<stem>_pb2_grpc`` modules generated for a proto file.

    Modules are loaded once per proto file. ``<stem>_pb2`` is registered in
    ``sys.modules`` because the generated grpc module imports it by name.
    """
    key = proto_path.resolve()
    if key in _proto_modules:
        return _proto_modules[key]
    base_name = proto_path.stem
    pb2_file_path = proto_path.parent / f"{base_name}_pb2.py"
    pb2_grpc_file_path = proto_path.parent / f"{base_name}_pb2_grpc.py"
    if not pb2_file_path.exists():
        raise FileNotFoundError(f"Generated module {pb2_file_path} does not exist")
    if not pb2_grpc_file_path.exists():
        raise FileNotFoundError(f"Generated module {pb2_grpc_file_path} does not exist")

    pb2 = load_module_from_file_location(f"{base_name}_pb2", pb2_file_path)
    pb2_grpc = load_module_from_file_location(f"{base_name}_pb2_grpc", pb2_grpc_file_path)
    _proto_modules[key] = (pb2, pb2_grpc)
    return pb2, pb2_grpc
