# --- protoc plugin input -----------------------------------------------------
import os

from google.protobuf.compiler import plugin_pb2
from google.protobuf.message import DecodeError

from protoc_gen_interceptors.src.protoc_gen_interceptors.errors import MetadataDecodeError
from protoc_gen_interceptors.src.protoc_gen_interceptors.models.descriptors import (
    FileDescriptor,
    MethodDescriptor,
    ServiceDescriptor,
)
from protoc_gen_interceptors.src.protoc_gen_interceptors.naming import generated_file_name


def decode_request(data: bytes) -> plugin_pb2.CodeGeneratorRequest:
    """
    Parses the serialized CodeGeneratorRequest protoc writes to the plugin's stdin.
    """
    request = plugin_pb2.CodeGeneratorRequest()
    try:
        request.ParseFromString(data)
    except DecodeError as e:
        raise MetadataDecodeError(f"cannot decode CodeGeneratorRequest: {e}") from e
    return request


def resolve_proto_files(request: plugin_pb2.CodeGeneratorRequest) -> list[FileDescriptor]:
    """
    Files protoc asked us to generate that declare at least one service,
    in the order protoc lists them.
    """
    to_generate = set(request.file_to_generate)
    files = []
    for proto in request.proto_file:
        if not proto.service or proto.name not in to_generate:
            continue
        services = tuple(
            ServiceDescriptor(
                name=service.name,
                methods=tuple(MethodDescriptor(name=method.name) for method in service.method),
            )
            for service in proto.service
        )
        files.append(FileDescriptor(filename=proto.name, services=services))
    return files


def resolve_out_dir(parameter: str) -> str:
    """
    The plugin takes a single `key=value` parameter (e.g. "out_dir=gen/go");
    anything else means "relative to the working directory".
    """
    items = parameter.split("=")
    if len(items) == 2:
        return items[1]
    return ""


def gateway_path(out_dir: str, proto_filename: str) -> str:
    return os.path.join(out_dir, generated_file_name(proto_filename))
