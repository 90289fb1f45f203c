"""Regenerate the booth protobuf stubs into photobooth/grpc/generated."""

import re
import subprocess
import sys
from pathlib import Path

GRPC_DIR = Path(__file__).resolve().parent
PROTO_FILE = GRPC_DIR / "booth.proto"
OUT_DIR = GRPC_DIR / "generated"

_TOP_LEVEL_IMPORT = re.compile(r"^import (\w+_pb2) as", flags=re.MULTILINE)


def _relative_imports(path: Path) -> bool:
    """protoc writes ``import booth_pb2``; the stubs live in a package."""
    source = path.read_text()
    patched = _TOP_LEVEL_IMPORT.sub(r"from . import \1 as", source)
    if patched == source:
        return False
    path.write_text(patched)
    return True


def run():
    OUT_DIR.mkdir(exist_ok=True)
    (OUT_DIR / "__init__.py").touch()

    cmd = [
        sys.executable, "-m", "grpc_tools.protoc",
        f"-I{GRPC_DIR}",
        f"--python_out={OUT_DIR}",
        f"--grpc_python_out={OUT_DIR}",
        str(PROTO_FILE),
    ]
    print("Running:", " ".join(cmd))
    subprocess.run(cmd, check=True)

    for stub in sorted(OUT_DIR.glob("*_pb2_grpc.py")):
        if _relative_imports(stub):
            print(f"✔ Fixed import in {stub.name}")

    print("✔ Protobufs generated at:", OUT_DIR)


if __name__ == "__main__":
    run()
