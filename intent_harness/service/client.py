import logging
import queue
from typing import Iterable, Optional

import grpc

from intent_harness import config
from intent_harness.config import HarnessSettings
from intent_harness.core.models import DetectionBatchResult, QueryInput, QueryResult, StreamState
from intent_harness.core.session import SessionAddress, new_session_id
from intent_harness.errors import RpcFailure, StreamTerminatedEarly
from intent_harness.protos import sessions_pb2 as pb2
from intent_harness.protos import sessions_pb2_grpc as pb2_grpc

logger = logging.getLogger(__name__)


def open_channel(settings: HarnessSettings) -> grpc.Channel:
    """Build the channel described by ``settings``; callers own closing it."""
    if not settings.use_tls:
        return grpc.insecure_channel(settings.target)

    root_certificates = None
    if settings.root_certificates is not None:
        root_certificates = settings.root_certificates.read_bytes()

    credentials = grpc.ssl_channel_credentials(root_certificates=root_certificates)
    if settings.access_token is not None:
        credentials = grpc.composite_channel_credentials(
            credentials,
            grpc.access_token_call_credentials(settings.access_token.get_secret_value()),
        )
    return grpc.secure_channel(settings.target, credentials)


class BidiStream:
    """
    Send/receive handle over one bidirectional streaming call.

    Requests go into an unbounded queue that grpc drains on its own thread,
    so send() never waits on the receive side and a slow reader cannot stall
    the writer. Iterating the stream yields responses until the server
    closes it; a terminating error is re-raised as grpc.RpcError.
    """

    _END = object()

    def __init__(self, stream_callable, timeout: Optional[float] = None):
        self.state = StreamState.IDLE
        self._requests = queue.Queue()
        self._responses = stream_callable(self._request_iterator(), timeout=timeout)

    def _request_iterator(self):
        while True:
            request = self._requests.get()
            if request is self._END:
                return
            yield request

    def send(self, request):
        if self.state not in (StreamState.IDLE, StreamState.SENDING):
            raise RuntimeError(f"cannot send on a stream in state {self.state.value}")
        self.state = StreamState.SENDING
        self._requests.put(request)

    def close_send(self):
        if self.state in (StreamState.IDLE, StreamState.SENDING):
            self._requests.put(self._END)
            self.state = StreamState.HALF_CLOSED

    def __iter__(self):
        self.state = StreamState.RECEIVING
        try:
            for response in self._responses:
                yield response
        except grpc.RpcError:
            self.state = StreamState.FAILED
            raise
        self.state = StreamState.CLOSED


def _log_result(query_result: QueryResult):
    logger.info("====================")
    logger.info("Query Text: '%s'", query_result.text)
    logger.info("Detected Intent: %s (confidence: %f)",
                query_result.matched_intent_name, query_result.confidence)


class IntentDetectionClient:
    """
    Client for the Sessions intent detection service.

    Every operation opens its own channel and closes it before returning,
    whether the batch succeeded or not.
    """

    def __init__(self, settings: Optional[HarnessSettings] = None):
        self.settings = settings if settings is not None else config.settings

    def detect_once(self, session: SessionAddress,
                    inputs: Iterable[QueryInput]) -> DetectionBatchResult:
        """
        Detect intents one unary call at a time, in submission order.

        Results are keyed by the submitted text. The first failing call
        aborts the batch: later inputs are never sent and RpcFailure is
        raised without any partial result.
        """
        query_results = {}

        with open_channel(self.settings) as channel:
            stub = pb2_grpc.SessionsStub(channel)
            logger.info("Session Path: %s", session)

            for query_input in inputs:
                request = pb2.DetectIntentRequest(
                    session=session.path,
                    query_input=query_input.to_proto(pb2),
                )
                try:
                    response = stub.DetectIntent(request, timeout=self.settings.timeout)
                except grpc.RpcError as e:
                    failure = RpcFailure.from_rpc_error(e)
                    logger.warning("DetectIntent failed for '%s': %s", query_input.text, failure)
                    raise failure from e

                query_result = QueryResult.from_proto(response.query_result)
                _log_result(query_result)
                query_results[query_input.text] = query_result

        return query_results

    def detect_stream(self, session: SessionAddress, inputs: Iterable[QueryInput],
                      require_complete: bool = False) -> DetectionBatchResult:
        """
        Detect intents over a single bidirectional stream.

        All requests are sent and the send side is closed before responses
        are read. Responses are keyed by their own echoed text since the
        server may answer in any order. An error ending the stream raises
        RpcFailure and whatever was read so far is dropped.

        A clean close with fewer responses than inputs is logged and the
        partial mapping returned, or raised as StreamTerminatedEarly when
        ``require_complete`` is set.
        """
        inputs = list(inputs)
        query_results = {}
        received = 0

        with open_channel(self.settings) as channel:
            stub = pb2_grpc.SessionsStub(channel)
            logger.info("Session Path: %s", session)

            stream = BidiStream(stub.StreamingDetectIntent, timeout=self.settings.timeout)
            try:
                for query_input in inputs:
                    stream.send(pb2.StreamingDetectIntentRequest(
                        session=session.path,
                        query_input=query_input.to_proto(pb2),
                    ))
            finally:
                stream.close_send()

            try:
                for response in stream:
                    # interim recognition results carry no query result
                    if not response.HasField("detect_intent_response"):
                        continue
                    query_result = QueryResult.from_proto(response.detect_intent_response.query_result)
                    _log_result(query_result)
                    query_results[query_result.text] = query_result
                    received += 1
            except grpc.RpcError as e:
                failure = RpcFailure.from_rpc_error(e)
                logger.warning("StreamingDetectIntent failed after %d of %d responses: %s",
                               received, len(inputs), failure)
                raise failure from e

        if received < len(inputs):
            if require_complete:
                raise StreamTerminatedEarly(len(inputs), received, query_results)
            logger.warning("Stream closed after %d of %d responses", received, len(inputs))

        return query_results


def session_from_settings(settings: HarnessSettings,
                          session_id: Optional[str] = None) -> SessionAddress:
    return SessionAddress.build(
        settings.project_id,
        settings.location_id,
        settings.agent_id,
        session_id or new_session_id(),
    )


def _query_inputs(texts, settings: HarnessSettings):
    return [QueryInput(text=text, language_code=settings.language_code) for text in texts]


def detect_intent(*texts: str, settings: Optional[HarnessSettings] = None,
                  session: Optional[SessionAddress] = None) -> DetectionBatchResult:
    settings = settings if settings is not None else config.settings
    session = session or session_from_settings(settings)
    return IntentDetectionClient(settings).detect_once(session, _query_inputs(texts, settings))


def streaming_detect_intent(*texts: str, settings: Optional[HarnessSettings] = None,
                            session: Optional[SessionAddress] = None) -> DetectionBatchResult:
    settings = settings if settings is not None else config.settings
    session = session or session_from_settings(settings)
    return IntentDetectionClient(settings).detect_stream(session, _query_inputs(texts, settings))
