"""Development entry point: ``python run.py`` or ``flask --app run run``."""
import os

from dotenv import load_dotenv

load_dotenv()

from printshop import create_app  # noqa: E402

app = create_app(os.environ.get('FLASK_ENV', 'development'))


if __name__ == '__main__':
    app.run(
        host=os.environ.get('FLASK_HOST', '127.0.0.1'),
        port=int(os.environ.get('FLASK_PORT', 5000)),
        debug=app.config.get('DEBUG', False)
    )
