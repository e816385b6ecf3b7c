from geogrid.api_routes import create_app
from geogrid.app_config import get_places_client, load_settings, setup_logging

settings = load_settings()
setup_logging(settings.log_level)
app = create_app(get_places_client(settings))

if __name__ == "__main__":
    print("Starting Places proxy at http://localhost:5050")
    app.run(debug=False, host="0.0.0.0", port=5050, threaded=True)
