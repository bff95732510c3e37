"""CLI argument parsing and uvicorn entry point."""

import importlib
import logging
import os


def load_tool_executor(target: str):
    """Import ``module:attr``; call it when it is a class or factory."""
    module_name, _, attr = target.partition(":")
    if not module_name or not attr:
        raise ValueError(f"Tool executor must look like 'module:attr', got {target!r}")
    obj = getattr(importlib.import_module(module_name), attr)
    if isinstance(obj, type) or (callable(obj) and not hasattr(obj, "execute_tool")):
        return obj()
    return obj


def main():
    import argparse
    import uvicorn

    from ..config import ExecutorConfig
    from ..orchestrator import CommandExecutor
    from .app import create_app

    parser = argparse.ArgumentParser(description="promptaction API Server")
    parser.add_argument("--host", default=os.getenv("PROMPTACTION_HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=int(os.getenv("PROMPTACTION_PORT", "8000")))
    parser.add_argument("--config", default=os.getenv("PROMPTACTION_CONFIG"), help="YAML config file")
    parser.add_argument(
        "--tool-executor",
        default=os.getenv("PROMPTACTION_TOOL_EXECUTOR"),
        required=os.getenv("PROMPTACTION_TOOL_EXECUTOR") is None,
        help="Tool executor as 'module:attr'",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(levelname)s: %(name)s - %(message)s",
    )

    config = ExecutorConfig.load(args.config)
    executor = CommandExecutor(tool_executor=load_tool_executor(args.tool_executor), config=config)
    uvicorn.run(create_app(executor), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
