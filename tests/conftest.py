"""Pytest configuration and fixtures for the interceptors plugin tests"""

import pytest

from protoc_gen_interceptors.src.protoc_gen_interceptors.models.descriptors import (
    FileDescriptor,
    MethodDescriptor,
    ServiceDescriptor,
)
from protoc_gen_interceptors.src.protoc_gen_interceptors.registry import build_file_index
from protoc_gen_interceptors.src.protoc_gen_interceptors.rewriter import GatewayRewriter

GATEWAY_HEADER = '''\
// Code generated by protoc-gen-grpc-gateway. DO NOT EDIT.
// source: helloworld/hello.proto

/*
Package helloworld is a reverse proxy.

It translates gRPC into RESTful JSON APIs.
*/
package helloworld

import (
	"context"
	"io"
	"net/http"

	"github.com/grpc-ecosystem/grpc-gateway/v2/runtime"
	"github.com/grpc-ecosystem/grpc-gateway/v2/utilities"
	"google.golang.org/grpc"
	"google.golang.org/grpc/codes"
	"google.golang.org/grpc/grpclog"
	"google.golang.org/grpc/metadata"
	"google.golang.org/grpc/status"
	"google.golang.org/protobuf/proto"
)

// Suppress "imported and not used" errors
var _ codes.Code
var _ io.Reader
var _ status.Status
var _ = runtime.String
var _ = utilities.NewDoubleArray
var _ = metadata.Join
'''

LOCAL_REQUEST_TEMPLATE = '''
func local_request_{service}_{method}_0(ctx context.Context, marshaler runtime.Marshaler, server {service}Server, req *http.Request, pathParams map[string]string) (proto.Message, runtime.ServerMetadata, error) {{
	var protoReq {method}Request
	var metadata runtime.ServerMetadata

	newReader, berr := utilities.IOReaderFactory(req.Body)
	if berr != nil {{
		return nil, metadata, status.Errorf(codes.InvalidArgument, "%v", berr)
	}}
	if err := marshaler.NewDecoder(newReader()).Decode(&protoReq); err != nil && err != io.EOF {{
		return nil, metadata, status.Errorf(codes.InvalidArgument, "%v", err)
	}}

	msg, err := server.{method}(ctx, &protoReq)
	return msg, metadata, err
}}
'''

HANDLE_TEMPLATE = '''
	mux.Handle("POST", pattern_{service}_{method}_0, func(w http.ResponseWriter, req *http.Request, pathParams map[string]string) {{
		ctx, cancel := context.WithCancel(req.Context())
		defer cancel()
		var stream runtime.ServerTransportStream
		ctx = grpc.NewContextWithServerTransportStream(ctx, &stream)
		inboundMarshaler, outboundMarshaler := runtime.MarshalerForRequest(mux, req)
		var err error
		var annotatedContext context.Context
		annotatedContext, err = runtime.AnnotateIncomingContext(ctx, mux, req, "/helloworld.{service}/{method}", runtime.WithHTTPPathPattern("/v1/{lower}"))
		if err != nil {{
			runtime.HTTPError(ctx, mux, outboundMarshaler, w, req, err)
			return
		}}
		resp, md, err := local_request_{service}_{method}_0(annotatedContext, inboundMarshaler, server, req, pathParams)
		md.HeaderMD, md.TrailerMD = metadata.Join(md.HeaderMD, stream.Header()), metadata.Join(md.TrailerMD, stream.Trailer())
		annotatedContext = runtime.NewServerMetadataContext(annotatedContext, md)
		if err != nil {{
			runtime.HTTPError(annotatedContext, mux, outboundMarshaler, w, req, err)
			return
		}}

		forward_{service}_{method}_0(annotatedContext, mux, outboundMarshaler, w, req, resp, mux.GetForwardResponseOptions()...)

	}})
'''

CLIENT_HANDLE_TEMPLATE = '''
	mux.Handle("POST", pattern_{service}_{method}_0, func(w http.ResponseWriter, req *http.Request, pathParams map[string]string) {{
		ctx, cancel := context.WithCancel(req.Context())
		defer cancel()
		inboundMarshaler, outboundMarshaler := runtime.MarshalerForRequest(mux, req)
		var err error
		var annotatedContext context.Context
		annotatedContext, err = runtime.AnnotateContext(ctx, mux, req, "/helloworld.{service}/{method}", runtime.WithHTTPPathPattern("/v1/{lower}"))
		if err != nil {{
			runtime.HTTPError(ctx, mux, outboundMarshaler, w, req, err)
			return
		}}
		resp, md, err := request_{service}_{method}_0(annotatedContext, inboundMarshaler, client, req, pathParams)
		annotatedContext = runtime.NewServerMetadataContext(annotatedContext, md)
		if err != nil {{
			runtime.HTTPError(annotatedContext, mux, outboundMarshaler, w, req, err)
			return
		}}

		forward_{service}_{method}_0(annotatedContext, mux, outboundMarshaler, w, req, resp, mux.GetForwardResponseOptions()...)

	}})
'''


def render_gateway(services: dict) -> str:
    """
    Builds a protoc-gen-grpc-gateway style file for {service: [methods]}:
    local_request_* functions, Register<Service>HandlerServer and
    Register<Service>HandlerClient for every service.
    """
    parts = [GATEWAY_HEADER]
    for service, methods in services.items():
        for method in methods:
            parts.append(LOCAL_REQUEST_TEMPLATE.format(service=service, method=method))
    for service, methods in services.items():
        parts.append(
            f"\n// Register{service}HandlerServer registers the http handlers for service {service} to \"mux\".\n"
            f"func Register{service}HandlerServer(ctx context.Context, mux *runtime.ServeMux, server {service}Server) error {{\n"
        )
        for method in methods:
            parts.append(HANDLE_TEMPLATE.format(service=service, method=method, lower=method.lower()))
        parts.append("\n\treturn nil\n}\n")
    for service, methods in services.items():
        parts.append(
            f"\nfunc Register{service}HandlerClient(ctx context.Context, mux *runtime.ServeMux, client {service}Client) error {{\n"
        )
        for method in methods:
            parts.append(CLIENT_HANDLE_TEMPLATE.format(service=service, method=method, lower=method.lower()))
        parts.append("\n\treturn nil\n}\n")
    return "".join(parts)


def make_file_descriptor(services: dict, filename: str = "helloworld/hello.proto") -> FileDescriptor:
    return FileDescriptor(
        filename=filename,
        services=tuple(
            ServiceDescriptor(name=name, methods=tuple(MethodDescriptor(name=m) for m in methods))
            for name, methods in services.items()
        ),
    )


@pytest.fixture(scope="session")
def rewriter():
    """Parser setup is the expensive part; share one rewriter across tests."""
    return GatewayRewriter()


@pytest.fixture
def greeter_services():
    return {"Greeter": ["SayHello"]}


@pytest.fixture
def multi_services():
    return {"Greeter": ["SayHello", "SayGoodbye"], "Farewell": ["Wave"]}


@pytest.fixture
def greeter_source(greeter_services):
    return render_gateway(greeter_services).encode("utf-8")


@pytest.fixture
def greeter_index(greeter_services):
    return build_file_index(make_file_descriptor(greeter_services))


@pytest.fixture
def multi_source(multi_services):
    return render_gateway(multi_services).encode("utf-8")


@pytest.fixture
def multi_index(multi_services):
    return build_file_index(make_file_descriptor(multi_services))
