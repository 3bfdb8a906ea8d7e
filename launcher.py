"""PyInstaller entry point — starts Flask server and opens browser."""

import multiprocessing
import os
import threading
import time
import traceback
import webbrowser

PORT = int(os.environ.get("FPL_ADVISOR_PORT", "9875"))
URL = f"http://127.0.0.1:{PORT}/api/health"


def open_browser():
    """Wait briefly for the server to start, then open the browser."""
    time.sleep(1.5)
    webbrowser.open(URL)


if __name__ == "__main__":
    multiprocessing.freeze_support()
    try:
        from fpl_advisor.app import app, logger

        logger.info("Starting FPL Advisor at %s", URL)
        threading.Thread(target=open_browser, daemon=True).start()
        app.run(host="127.0.0.1", port=PORT, debug=False, threaded=True)
    except Exception:
        traceback.print_exc()
        input("\nPress Enter to exit...")
