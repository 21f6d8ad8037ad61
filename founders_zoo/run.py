#!/usr/bin/env python3
"""
Service startup wrapper.
"""
import sys

if __name__ == "__main__":
    try:
        import uvicorn
        uvicorn.run(
            "founders_zoo.main:app",
            host="0.0.0.0",
            port=8000,
            reload=False,
            log_level="info",
            access_log=True
        )
    except KeyboardInterrupt:
        print("\n[founders_zoo] Shutting down...")
        sys.exit(0)
