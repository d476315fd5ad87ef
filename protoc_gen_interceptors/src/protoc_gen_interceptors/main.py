#!/usr/bin/env python3
"""
protoc-gen-interceptors
-----------------------
protoc plugin that post-processes protoc-gen-grpc-gateway output so that every
HTTP handler registered by Register<Service>HandlerServer runs through an
optional grpc.UnaryServerInterceptor.

For each proto file with services it rewrites <out_dir>/<name>.pb.gw.go in place:
- Register<Service>HandlerServer gets an `interceptor *grpc.UnaryServerInterceptor` parameter
- each local_request_<Service>_<Method>_0 call site calls interceptor_local_request_<Service>_<Method>_0
- those wrapper functions are appended to the file

Running it again on its own output changes nothing.

USAGE
-----
Run it after the gateway generator, e.g. with buf:

    # buf.gen.postprocess.yaml
    plugins:
      - name: interceptors
        out: gen/go
        opt: out_dir=gen/go

Environment:
    PROTOC_GEN_INTERCEPTORS_LOG_LEVEL   logging level (default INFO)
    PROTOC_GEN_INTERCEPTORS_GOFMT       set to 0 to skip gofmt
    PROTOC_GEN_INTERCEPTORS_FAIL_FAST   set to 0 to skip files that fail to parse or write instead of aborting
"""

import logging
import sys
from typing import Optional

from protoc_gen_interceptors.src.protoc_gen_interceptors.config import PluginOptions
from protoc_gen_interceptors.src.protoc_gen_interceptors.errors import EmitError, InterceptorsError, SourceParseError
from protoc_gen_interceptors.src.protoc_gen_interceptors.inputs.code_generator_request import (
    decode_request,
    gateway_path,
    resolve_proto_files,
)
from protoc_gen_interceptors.src.protoc_gen_interceptors.models.descriptors import FileDescriptor, RewriteResult
from protoc_gen_interceptors.src.protoc_gen_interceptors.outputs.emitter import build_response, format_source, write_file
from protoc_gen_interceptors.src.protoc_gen_interceptors.registry import build_file_index
from protoc_gen_interceptors.src.protoc_gen_interceptors.rewriter import GatewayRewriter

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def resolve_log_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level: str):
    # stdout carries the CodeGeneratorResponse, so logs go to stderr.
    logging.basicConfig(stream=sys.stderr, level=resolve_log_level(level), format=LOG_FORMAT)


def read_source(path: str) -> bytes:
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise SourceParseError(path, f"cannot read file: {e}") from e


def process_file(rewriter: GatewayRewriter, proto_file: FileDescriptor,
                 options: PluginOptions) -> Optional[RewriteResult]:
    """
    Rewrites the gateway file of one proto file. Nothing is written unless the
    whole transform succeeded.
    """
    file_index = build_file_index(proto_file)
    if file_index is None:
        return None

    path = gateway_path(options.out_dir, proto_file.filename)
    source = read_source(path)
    result = rewriter.rewrite_source(source, file_index, path)
    write_file(path, format_source(result.source, path, options.gofmt))

    logger.info("%s: %d handlers wrapped, %d root functions patched",
                path, len(result.rewrites), len(result.patched_roots))
    return result


def run(data: bytes, options: PluginOptions) -> list[RewriteResult]:
    request = decode_request(data)
    options = options.with_parameter(request.parameter)

    rewriter = GatewayRewriter()
    results = []
    for proto_file in resolve_proto_files(request):
        try:
            result = process_file(rewriter, proto_file, options)
        except (SourceParseError, EmitError) as e:
            if options.fail_fast:
                raise
            logger.error("skipping %s", e)
            continue
        if result is not None:
            results.append(result)
    return results


def main() -> int:
    options = PluginOptions.from_env()
    configure_logging(options.log_level)

    error = None
    try:
        run(sys.stdin.buffer.read(), options)
    except InterceptorsError as e:
        logger.error("%s", e)
        error = str(e)

    sys.stdout.buffer.write(build_response(error))
    sys.stdout.buffer.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())
