"""
G-code Driver - Main Entry Point

Run with: uvicorn main:app --reload --port 8000
Set GCODE_DRIVER_CONFIG to a JSON driver config to use real hardware.
"""

import sys
from pathlib import Path

# Add backend to path for imports
backend_path = Path(__file__).parent
sys.path.insert(0, str(backend_path))

import uvicorn

from api.app import create_app
from api.dependencies import get_app_state


# Create app instance
app = create_app()


# === Startup/Shutdown Events ===

@app.on_event("startup")
async def startup_event():
    """Initialize on startup"""
    state = get_app_state()
    config = state.config

    print("=" * 50)
    print("  G-code Driver v1.0")
    print("=" * 50)
    print()
    print("Configuration:")
    print(f"  Port: {config.port} @ {config.baud_rate}")
    print(f"  Units: {config.units.value}, max feed rate {config.max_feed_rate:.0f}")
    print(f"  Sub-drivers: {len(config.sub_drivers)}")
    print()
    print("API ready at http://localhost:8000")
    print("Docs at http://localhost:8000/docs")
    print()


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown"""
    state = get_app_state()
    try:
        if state.driver is not None:
            print("[SHUTDOWN] Disabling and disconnecting...")
            state.driver.set_enabled(False)
            state.disconnect()
    except Exception as e:
        print(f"[SHUTDOWN] Error during cleanup: {e}")


# === Health Check ===

@app.get("/health")
def health_check():
    """Health check endpoint"""
    state = get_app_state()
    return {
        "status": "ok",
        "version": "1.0.0",
        "connected": state.is_connected,
    }


# === Run directly ===

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
