# --- Identifier templates shared with protoc-gen-grpc-gateway output -------

PROTO_EXTENSION = ".proto"

GENERATED_FILE_TEMPLATE = "{}.pb.gw.go"
ROOT_FUNCTION_TEMPLATE = "Register{}HandlerServer"
METHOD_FUNCTION_TEMPLATE = "local_request_{}_{}_0"
WRAPPER_FUNCTION_TEMPLATE = "interceptor_{}"

# Names the gateway generator uses inside handler closures; the synthesized
# wrappers and the rewritten call sites rely on them.
INTERCEPTOR_VAR = "interceptor"
SERVER_VAR = "server"
RUNTIME_PACKAGE = "runtime"
ANNOTATE_INCOMING_CONTEXT = "AnnotateIncomingContext"


def root_function_name(service: str) -> str:
    """RegisterGreeterHandlerServer for service "Greeter"."""
    return ROOT_FUNCTION_TEMPLATE.format(service)


def method_function_name(service: str, method: str) -> str:
    """local_request_Greeter_SayHello_0 for Greeter.SayHello."""
    return METHOD_FUNCTION_TEMPLATE.format(service, method)


def wrapper_function_name(call_name: str) -> str:
    return WRAPPER_FUNCTION_TEMPLATE.format(call_name)


def generated_file_name(proto_filename: str) -> str:
    """
    Maps a proto path to the gateway file protoc-gen-grpc-gateway writes for it,
    e.g. "helloworld/hello.proto" -> "helloworld/hello.pb.gw.go".
    """
    return GENERATED_FILE_TEMPLATE.format(proto_filename.replace(PROTO_EXTENSION, ""))
