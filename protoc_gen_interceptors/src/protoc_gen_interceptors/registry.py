import logging
from typing import Optional

from protoc_gen_interceptors.src.protoc_gen_interceptors.models.descriptors import FileDescriptor, FileIndex
from protoc_gen_interceptors.src.protoc_gen_interceptors.naming import method_function_name, root_function_name

logger = logging.getLogger(__name__)


def build_file_index(proto_file: Optional[FileDescriptor]) -> Optional[FileIndex]:
    """
    Builds the name lookups for one proto file:
    - RegisterXHandlerServer -> service descriptor, one entry per service
    - the set of local_request_X_Y_0 names for every method of every service

    Returns None (and logs) when there is no descriptor, so the caller can skip the file.
    """
    if proto_file is None:
        logger.warning("no file descriptor given, skipping")
        return None

    root_functions = {}
    expected_calls = set()
    for service in proto_file.services:
        root_functions[root_function_name(service.name)] = service
        for method in service.methods:
            expected_calls.add(method_function_name(service.name, method.name))

    logger.debug("%s: %d root functions, %d expected call sites",
                 proto_file.filename, len(root_functions), len(expected_calls))
    return FileIndex(root_functions=root_functions, expected_calls=frozenset(expected_calls))
