import logging
import os
import shutil
import stat
import subprocess
from typing import Optional

from google.protobuf.compiler import plugin_pb2

from protoc_gen_interceptors.src.protoc_gen_interceptors.errors import EmitError

logger = logging.getLogger(__name__)

GOFMT = "gofmt"
FILE_MODE = 0o664


# --- Formatting & writing -----------------------------------------------------

def format_source(source: bytes, path: str, enabled: bool = True) -> bytes:
    """
    Pipes the source through gofmt when it is installed. Without gofmt the text
    is written as produced; the rewriter already emits gofmt-shaped code.
    """
    if not enabled:
        return source
    gofmt = shutil.which(GOFMT)
    if gofmt is None:
        logger.debug("%s not found on PATH, writing %s unformatted", GOFMT, path)
        return source
    proc = subprocess.run([gofmt], input=source, capture_output=True, check=False)
    if proc.returncode != 0:
        raise EmitError(path, f"gofmt failed: {proc.stderr.decode('utf-8', errors='replace').strip()}")
    return proc.stdout


def write_file(path: str, content: bytes):
    """
    Replaces the file content. Goes through a temporary file in the same
    directory so a failed write never leaves a half-written gateway file.
    An existing file keeps its permissions; new files get FILE_MODE.
    """
    tmp_path = f"{path}.tmp"
    try:
        mode = stat.S_IMODE(os.stat(path).st_mode) if os.path.exists(path) else FILE_MODE
        with open(tmp_path, "wb") as f:
            f.write(content)
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    except OSError as e:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise EmitError(path, f"cannot write file: {e}") from e


# --- protoc response ----------------------------------------------------------

def build_response(error: Optional[str] = None) -> bytes:
    """
    The plugin edits files in place, so the response carries no files; protoc
    only needs to see whether the run failed.
    """
    response = plugin_pb2.CodeGeneratorResponse()
    response.supported_features = plugin_pb2.CodeGeneratorResponse.FEATURE_PROTO3_OPTIONAL
    if error:
        response.error = error
    return response.SerializeToString()
