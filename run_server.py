import os

import uvicorn

if __name__ == "__main__":
    host = os.environ.get("INSTANCE_STORE_HOST", "0.0.0.0")
    port = int(os.environ.get("INSTANCE_STORE_PORT", "8000"))

    print(f"Starting Instance Store on http://{host}:{port}/")

    uvicorn.run(
        "instance_store.api.server:app",
        host=host,
        port=port,
    )
