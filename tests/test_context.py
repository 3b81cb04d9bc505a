import time
from unittest.mock import AsyncMock, Mock

import grpc
import pytest

from hello_grpc.context import ServiceContext


@pytest.fixture
def mock_grpc_context():
    context = Mock(spec=grpc.aio.ServicerContext)
    context.invocation_metadata.return_value = [("key1", "value1"), ("key2", "value2")]
    context.time_remaining.return_value = 30.0
    context.peer.return_value = "test_peer"
    context.cancelled.return_value = False
    context.abort = AsyncMock()
    return context


@pytest.fixture
def service_context(mock_grpc_context):
    return ServiceContext(
        grpc_context=mock_grpc_context,
        method=Mock(),
        method_descriptor=Mock(),
    )


async def test_service_context_initialization(service_context, mock_grpc_context):
    assert service_context.grpc_context == mock_grpc_context
    assert service_context._start_time > 0


async def test_message_types_come_from_descriptor(app):
    pb2, _ = app.service.import_pb_modules()
    descriptor = pb2.DESCRIPTOR.services_by_name["Hello"].methods_by_name["StreamHello"]
    context = ServiceContext(Mock(), Mock(), descriptor)
    assert context.input_type is pb2.Void
    assert context.output_type is pb2.HelloReply


async def test_elapsed_time_is_in_milliseconds(service_context):
    assert 0 <= service_context.elapsed_time < 50
    time.sleep(0.1)
    elapsed = service_context.elapsed_time
    assert elapsed >= 100
    assert elapsed < 500


async def test_metadata_property_is_cached(service_context, mock_grpc_context):
    assert service_context.metadata == {"key1": "value1", "key2": "value2"}
    assert service_context.metadata == {"key1": "value1", "key2": "value2"}
    mock_grpc_context.invocation_metadata.assert_called_once()


async def test_metadata_without_invocation_metadata(service_context, mock_grpc_context):
    mock_grpc_context.invocation_metadata.return_value = None
    assert service_context.metadata == {}


async def test_delegated_queries(service_context, mock_grpc_context):
    assert service_context.time_remaining() == 30.0
    assert service_context.peer() == "test_peer"
    assert service_context.cancelled() is False
    assert service_context.invocation_metadata() == [("key1", "value1"), ("key2", "value2")]


async def test_set_code_and_details(service_context, mock_grpc_context):
    service_context.set_code(grpc.StatusCode.NOT_FOUND)
    service_context.set_details("Resource not found")
    mock_grpc_context.set_code.assert_called_with(grpc.StatusCode.NOT_FOUND)
    mock_grpc_context.set_details.assert_called_with("Resource not found")


async def test_abort(service_context, mock_grpc_context):
    await service_context.abort(grpc.StatusCode.INVALID_ARGUMENT, "bad length")
    mock_grpc_context.abort.assert_awaited_once_with(
        grpc.StatusCode.INVALID_ARGUMENT, "bad length", ()
    )
