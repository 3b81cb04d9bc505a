# -*- coding: utf-8 -*-
import typing
from collections.abc import Sequence
from typing import Any, Type

from jinja2 import Template
from pydantic import BaseModel

from hello_grpc.schemas import Void
from hello_grpc.service import MethodMode, Service

PYTHON_TO_PROTOBUF_TYPES = {
    bytes: "bytes",
    int: "int32",
    float: "float",
    bool: "bool",
    str: "string",
}

PROTO_TEMPLATE = """
syntax = "proto3";

package {{ proto_define.package }};
{% for message in proto_define.messages.values() %}
message {{ message.name }} {
    {% for field in message.fields -%}
    {{ field.type }} {{ field.name }} = {{ field.index }};
    {%- if not loop.last %}
    {% endif %}
    {%- endfor %}
}
{% endfor %}
{% for service in proto_define.services %}
service {{ service.name }} {
    {% for method in service.methods -%}
    rpc {{ method.name }}({{ method.request }}) returns ({{ method.response }});
    {%- if not loop.last %}
    {% endif %}
    {%- endfor %}
}
{% endfor %}
"""


class ProtoField(BaseModel):
    name: str
    index: int
    type: str = ""


class ProtoStruct(BaseModel):
    name: str
    fields: list[ProtoField]


class ProtoMethod(BaseModel):
    name: str
    request: str
    response: str


class ProtoService(BaseModel):
    name: str
    methods: list[ProtoMethod]


class ProtoDefine(BaseModel):
    package: str
    services: list[ProtoService]
    messages: dict[Any, ProtoStruct]

    def render_proto_file(self) -> str:
        return Template(PROTO_TEMPLATE).render(proto_define=self)


class ProtoBuilder:
    """Collects services and the pydantic models they use into a proto3 definition."""

    def __init__(self, package: str):
        self._proto_define = ProtoDefine(package=package, services=[], messages={})

    def add_service(self, service: Service):
        srv = ProtoService(name=service.name, methods=[])
        self._proto_define.services.append(srv)
        for name, method in service.methods.items():
            request = self.convert_message(method.request_model or Void)
            response = self.convert_message(method.response_model or Void)
            proto_method = ProtoMethod(
                name=name, request=request.name, response=response.name
            )
            if method.mode is MethodMode.UNARY_STREAM:
                proto_method.response = f"stream {proto_method.response}"
            srv.methods.append(proto_method)
        return self

    def get_proto(self):
        return self._proto_define

    def convert_message(self, schema: Type[BaseModel]) -> ProtoStruct:
        if schema in self._proto_define.messages:
            return self._proto_define.messages[schema]
        message = ProtoStruct(name=schema.__name__, fields=[])
        for i, (name, field) in enumerate(schema.model_fields.items(), 1):
            type_name = self._get_type_name(field.annotation)
            message.fields.append(ProtoField(name=name, type=type_name, index=i))
        self._proto_define.messages[schema] = message
        return message

    def _get_type_name(self, type_: Any) -> str:
        if type_ in PYTHON_TO_PROTOBUF_TYPES:
            return PYTHON_TO_PROTOBUF_TYPES[type_]
        origin = typing.get_origin(type_)
        args = typing.get_args(type_)
        if origin is typing.Union:
            _args = [i for i in args if i is not type(None)]
            return self._get_type_name(_args[0])
        if origin is None:
            if isinstance(type_, type) and issubclass(type_, BaseModel):
                return self.convert_message(type_).name
        elif issubclass(origin, Sequence) and origin is not str:
            return f"repeated {self._get_type_name(args[0])}"
        raise ValueError(f"Unsupported type: {type_}")
