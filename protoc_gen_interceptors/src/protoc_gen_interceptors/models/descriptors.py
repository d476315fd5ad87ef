# --- Data models for services, indexes and captured rewrites ---------------
from dataclasses import dataclass, field


@dataclass(frozen=True)
class MethodDescriptor:
    """One RPC method of a service."""
    name: str  # e.g., "SayHello"


@dataclass(frozen=True)
class ServiceDescriptor:
    """One RPC service declared in a proto file."""
    name: str  # e.g., "Greeter"
    methods: tuple[MethodDescriptor, ...] = ()


@dataclass(frozen=True)
class FileDescriptor:
    """A proto file with at least one service; one gateway file is rewritten per descriptor."""
    filename: str  # proto path as protoc reports it, e.g., "helloworld/hello.proto"
    services: tuple[ServiceDescriptor, ...] = ()


@dataclass(frozen=True)
class FileIndex:
    """Name lookups built from a FileDescriptor before the tree is walked."""
    root_functions: dict[str, ServiceDescriptor]  # RegisterXHandlerServer -> service
    expected_calls: frozenset[str]  # local_request_X_Y_0 names


@dataclass
class CapturedRewrite:
    """A call site that was redirected to a synthesized wrapper."""
    synthetic_function_name: str  # e.g., "interceptor_local_request_Greeter_SayHello_0"
    rpc_method_name: str  # Go string literal text including quotes, may be empty
    original_assignment: str  # source text of the statement that was replaced
    server_type: str = ""


@dataclass
class RewriteResult:
    """Output of one file's transform."""
    source: bytes
    rewrites: dict[str, CapturedRewrite] = field(default_factory=dict)
    patched_roots: list[str] = field(default_factory=list)
    deleted_functions: list[str] = field(default_factory=list)
    server_type: str = ""
