from bicep_facts.rpc.connection import JsonRpcConnection
from bicep_facts.rpc.endpoint import PipeEndpoint, generate_pipe_endpoint
from bicep_facts.rpc.process import CompilerProcess, ensure_bicep_available
from bicep_facts.rpc.session import BicepRpcSession, SessionState

__all__ = [
    "BicepRpcSession",
    "CompilerProcess",
    "JsonRpcConnection",
    "PipeEndpoint",
    "SessionState",
    "ensure_bicep_available",
    "generate_pipe_endpoint",
]
