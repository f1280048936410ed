import os

from songlibrary.app import create_app
from songlibrary.database import create_schema

app = create_app()
create_schema()

if __name__ == "__main__":
    app.run(
        host="0.0.0.0",  # noqa: S104
        port=int(os.environ.get("FLASK_SERVER_PORT", "5000")),
        debug=True,
    )
