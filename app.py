import os

from core.app_factory import create_app

app = create_app()

print("DATABASE   :", app.config["DATABASE_URL"].split("@")[-1])
print("MAIL       :", app.config["MAIL_PROVIDER"], "(enabled)" if app.config["EMAILS_ENABLED"] else "(disabled)")


if __name__ == "__main__":
    app.run(
        host=os.environ.get("HOST", "127.0.0.1"),
        port=int(os.environ.get("PORT", "5000")),
        debug=not app.config["IS_PRODUCTION"],
    )
