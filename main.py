from intent_harness.config import settings
from intent_harness.logging_config import setup_logging
from intent_harness.service.grpc_server import serve


def main():
    setup_logging(settings.log_level, settings.log_file)

    # Mock backend on the port the harness probes
    serve(settings.port, reverse_stream=settings.mock_reverse_stream)


if __name__ == '__main__':
    main()
