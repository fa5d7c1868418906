from __future__ import annotations

import sys
from typing import List, Optional

from protoc_wire.compiler import WireCompiler
from protoc_wire.config import ConfigError, parse_args
from protoc_wire.emission import CompileError, CompileInterrupted
from protoc_wire.loader import LoadError
from protoc_wire.profile import ProfileError


def run(argv: Optional[List[str]] = None) -> List[str]:
    """Parse ``argv``, compile, and return the emitted paths."""
    config = parse_args(argv)
    return WireCompiler(config).compile()


def main(argv: Optional[List[str]] = None) -> None:
    try:
        run(argv)
    except CompileInterrupted as e:
        print(f"Interrupted: {e}", file=sys.stderr)
        sys.exit(130)
    except (ConfigError, LoadError, ProfileError, CompileError) as e:
        print(f"Fatal: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
