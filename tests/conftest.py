import grpc
import pytest

from hello_grpc import Greeter, Settings, create_app


@pytest.fixture(scope="session")
def proto_path(tmp_path_factory):
    return tmp_path_factory.mktemp("protos") / "hello.proto"


@pytest.fixture(scope="session")
def greeter():
    return Greeter()


@pytest.fixture(scope="session")
def app(proto_path, greeter):
    """The real application, with its proto rendered and compiled once per session."""
    application = create_app(Settings(proto=str(proto_path)), greeter=greeter)
    application.setup()
    return application


@pytest.fixture
async def target(app):
    """Start a grpc.aio server on an ephemeral port and yield its address."""
    server = grpc.aio.server()
    app.add_to_server(server)
    port = server.add_insecure_port("127.0.0.1:0")
    await server.start()
    try:
        yield f"127.0.0.1:{port}"
    finally:
        await server.stop(grace=None)
