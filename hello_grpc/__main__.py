import logging

import logzero

from hello_grpc.app import create_app
from hello_grpc.settings import get_settings


def main() -> None:
    settings = get_settings()
    logzero.loglevel(logging.getLevelName(settings.log_level))
    app = create_app(settings)
    app.run(host=settings.host, port=settings.port, grace=settings.shutdown_grace)


if __name__ == "__main__":
    main()
