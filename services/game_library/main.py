"""Game library service main entry point."""

import uvicorn
import os

if __name__ == "__main__":
    port = int(os.getenv("PORT", 8010))
    uvicorn.run(
        "services.game_library.src.api:app",
        host="0.0.0.0",
        port=port,
        reload=os.getenv("DEBUG", "false").lower() == "true"
    )
