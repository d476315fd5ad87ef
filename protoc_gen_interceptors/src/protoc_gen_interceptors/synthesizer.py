"""
Go code templates for the interceptor wrappers.

Every wrapper has the same shape; only four values vary per call site:
the wrapper name, the server type, the RPC method literal and the original
call-site assignment that ends up inside the handler closure.
"""
from string import Template

from protoc_gen_interceptors.src.protoc_gen_interceptors.models.descriptors import CapturedRewrite
from protoc_gen_interceptors.src.protoc_gen_interceptors.naming import INTERCEPTOR_VAR

INTERCEPTOR_PARAM = f"{INTERCEPTOR_VAR} *grpc.UnaryServerInterceptor"

CALL_SITE_TEMPLATE = Template(
    "md, resp, err := ${name}(ctx, annotatedContext, inboundMarshaler, server, interceptor, req, pathParams)"
)

WRAPPER_TEMPLATE = Template("""\
func ${name}(ctx, annotatedContext context.Context, inboundMarshaler runtime.Marshaler, \
server ${server_type}, interceptor *grpc.UnaryServerInterceptor, req *http.Request, \
pathParams map[string]string) (md runtime.ServerMetadata, resp proto.Message, err error) {
	type handlerResponse struct {
		md   runtime.ServerMetadata
		resp proto.Message
	}
	handler := func(ctx context.Context, req interface{}) (interface{}, error) {
		if req, ok := req.(*http.Request); ok {
			${assignment}
			return handlerResponse{resp: resp, md: md}, err
		}
		return nil, fmt.Errorf("error converting req to *http.Request")
	}
	var handlerResponseItem interface{}
	if interceptor == nil {
		handlerResponseItem, err = handler(ctx, req)
	} else {
		handlerResponseItem, err = (*interceptor)(ctx, req, &grpc.UnaryServerInfo{Server: server, \
FullMethod: ${full_method}}, handler)
	}
	if err != nil {
		return
	}
	data, ok := handlerResponseItem.(handlerResponse)
	if !ok {
		return
	}
	return data.md, data.resp, nil
}""")

EMPTY_STRING_LITERAL = '""'


def render_call_site(wrapper_name: str) -> str:
    """The statement that replaces an original local_request_* assignment."""
    return CALL_SITE_TEMPLATE.substitute(name=wrapper_name)


def render_wrapper(name: str, server_type: str, rpc_method_literal: str, assignment: str) -> str:
    """
    Fills the wrapper template.

    `rpc_method_literal` is Go literal text (quotes included) as it appeared in the
    AnnotateIncomingContext call; an empty value becomes "".
    """
    return WRAPPER_TEMPLATE.substitute(
        name=name,
        server_type=server_type,
        full_method=rpc_method_literal or EMPTY_STRING_LITERAL,
        assignment=assignment,
    )


def render_captured(rewrite: CapturedRewrite) -> str:
    return render_wrapper(
        rewrite.synthetic_function_name,
        rewrite.server_type,
        rewrite.rpc_method_name,
        rewrite.original_assignment,
    )
