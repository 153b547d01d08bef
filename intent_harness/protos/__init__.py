import os
import sys

import grpc

# protoc resolves .proto paths against sys.path; the path below is relative
# to the directory holding the intent_harness package
PACKAGE_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
PROTO_PATH = "intent_harness/protos/intent_harness_sessions.proto"

if PACKAGE_ROOT not in sys.path:
    sys.path.append(PACKAGE_ROOT)

sessions_pb2, sessions_pb2_grpc = grpc.protos_and_services(PROTO_PATH)

__all__ = ["sessions_pb2", "sessions_pb2_grpc"]
