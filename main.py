from app.main import app
from app.scraper.config_validation import validate_runtime_config
import os

if __name__ == "__main__":
    # Importing app.main creates the data and export directories. The hosting
    # environment may provide PORT; default to 8080 for local development.
    validate_runtime_config("ui")
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port)
