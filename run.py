# run.py
import uvicorn
import os
from dotenv import load_dotenv

# Load environment variables from .env
load_dotenv()

if __name__ == "__main__":
    # Host and port from the environment, with local defaults
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 3000))

    # RELOAD=true restarts the server on code changes (development only).
    # Stores are in memory, so a reload drops every session and delivery token.
    reload = os.getenv("RELOAD", "false").lower() == "true"
    uvicorn.run("dashpipe.main:app", host=host, port=port, reload=reload)
