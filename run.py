import logging
import sys
from booking_assistant import create_app
from booking_assistant.config import Settings
from dotenv import load_dotenv
from flask_cors import CORS

# --- Load environment variables ---
load_dotenv(dotenv_path=".env")
settings = Settings.from_env()

# --- Configure logging globally ---
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]  # ensures logs go to stdout for Docker
)

# --- Create and configure Flask app ---
app = create_app()
CORS(app)

if __name__ == "__main__":
    # Don’t use debug=True inside Docker in production (Flask debugger isn't safe)
    app.run(host="0.0.0.0", port=5000, debug=False)
