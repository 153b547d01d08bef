import logging
import uuid
from concurrent import futures
from typing import Optional, Tuple

import grpc

from intent_harness.core.engine import IntentEngine
from intent_harness.core.models import REQUEST_ERROR_SENTINEL
from intent_harness.core.session import SessionAddress
from intent_harness.protos import sessions_pb2 as pb2
from intent_harness.protos import sessions_pb2_grpc as pb2_grpc

logger = logging.getLogger(__name__)


class SessionsServiceImpl(pb2_grpc.SessionsServicer):
    """Mock Sessions backend: echoes each query with the engine's best intent."""

    def __init__(self, engine: Optional[IntentEngine] = None, reverse_stream: bool = False):
        self.engine = engine or IntentEngine()
        # hold streamed answers until end of input, then send them last-first
        self.reverse_stream = reverse_stream

    def _detect(self, request, context):
        try:
            SessionAddress.parse(request.session)
        except ValueError as e:
            context.abort(grpc.StatusCode.INVALID_ARGUMENT, str(e))

        query_input = request.query_input
        text = query_input.text.text
        logger.info("Detect '%s' in %s", text, request.session)

        if text == REQUEST_ERROR_SENTINEL:
            context.abort(grpc.StatusCode.ABORTED, "")

        result = self.engine.predict(text)
        logger.info("Matched '%s' -> '%s' (%.2f) in %d ms",
                    text, result["intent"], result["confidence"], result["latency"])
        if not text:
            match_type = pb2.Match.NO_INPUT
        elif result["intent"]:
            match_type = pb2.Match.INTENT
        else:
            match_type = pb2.Match.NO_MATCH

        return pb2.DetectIntentResponse(
            response_id=str(uuid.uuid4()),
            query_result=pb2.QueryResult(
                text=text,
                language_code=query_input.language_code,
                intent_detection_confidence=result["confidence"],
                match=pb2.Match(
                    intent=pb2.Intent(display_name=result["intent"]),
                    resolved_input=text,
                    match_type=match_type,
                    confidence=result["confidence"],
                ),
            ),
        )

    def DetectIntent(self, request, context):
        return self._detect(request, context)

    def StreamingDetectIntent(self, request_iterator, context):
        pending = []
        for request in request_iterator:
            response = pb2.StreamingDetectIntentResponse(
                detect_intent_response=self._detect(request, context)
            )
            if self.reverse_stream:
                pending.append(response)
            else:
                yield response

        for response in reversed(pending):
            yield response


def create_server(address: str, servicer: Optional[SessionsServiceImpl] = None,
                  max_workers: int = 4) -> Tuple[grpc.Server, int]:
    """Build an insecure, not yet started server; returns it with the bound port."""
    server = grpc.server(
        futures.ThreadPoolExecutor(max_workers=max_workers),
        options=[("grpc.so_reuseport", 0)],
    )
    pb2_grpc.add_SessionsServicer_to_server(servicer or SessionsServiceImpl(), server)
    port = server.add_insecure_port(address)
    return server, port


def serve(port: int, reverse_stream: bool = False):
    server, bound_port = create_server(
        f"[::]:{port}", SessionsServiceImpl(reverse_stream=reverse_stream)
    )
    server.start()
    logger.info("Mock Sessions server started on port %d", bound_port)
    logger.info("Ready to accept requests...")
    server.wait_for_termination()
