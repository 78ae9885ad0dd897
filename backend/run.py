"""
Run the Status Workflow API with uvicorn.

Usage:
    python run.py
    python run.py --reload           # Development mode with auto-reload
    python run.py --port 8080        # Custom port
    python run.py --no-scheduler     # Serve the API without background reconciliation
"""
import argparse
import os

import uvicorn


def main():
    parser = argparse.ArgumentParser(description="Run the Status Workflow API server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to (default: 8000)")
    parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Worker processes (default: 1, ignored with --reload). "
             "Each worker runs its own reconciliation scheduler unless --no-scheduler is set."
    )
    parser.add_argument(
        "--no-scheduler",
        action="store_true",
        help="Disable the periodic status history reconciliation"
    )
    args = parser.parse_args()

    # Read by Settings when app.main is imported in the server process
    if args.no_scheduler:
        os.environ["RECONCILIATION_ENABLED"] = "false"

    workers = 1 if args.reload else args.workers
    print(f"Status Workflow API on http://{args.host}:{args.port} "
          f"(workers={workers}, reload={args.reload}, reconciliation={not args.no_scheduler})")

    uvicorn.run("app.main:app", host=args.host, port=args.port, reload=args.reload, workers=workers)


if __name__ == "__main__":
    main()
