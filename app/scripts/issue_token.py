import sys
import os
import argparse
import logging

# Add parent directory to path so we can import app modules
current_dir = os.path.dirname(os.path.abspath(__file__))
parent_dir = os.path.dirname(current_dir)
sys.path.append(parent_dir)

from flask import Flask

from constants import SMARTEXAM_DB
from db import db, init_db
from exceptions import StoreWriteFailedException
from repositories.user_repository import UserRepository

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)


def issue_token(uid, email=None, name="cli"):
    """Create the user if needed and print a new bearer token for it."""
    app = Flask(__name__)
    app.config["SQLALCHEMY_DATABASE_URI"] = SMARTEXAM_DB
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    db.init_app(app)
    init_db(app)

    with app.app_context():
        try:
            user = UserRepository.get_or_create(uid, email)
            token = UserRepository.create_token(user, name)
        except StoreWriteFailedException as e:
            logger.error(f"Failed to issue token: {e.message}")
            return None

        logger.info(f"Token '{name}' issued for user {uid}")
        return token.token


def main():
    parser = argparse.ArgumentParser(description="Issue an API bearer token for a user")
    parser.add_argument("uid", help="Remote identity id of the user")
    parser.add_argument("--email", help="Email stored on first creation")
    parser.add_argument("--name", default="cli", help="Label of the token")

    args = parser.parse_args()

    token = issue_token(args.uid, args.email, args.name)
    if token:
        print(token)
        sys.exit(0)
    print("FAILURE")
    sys.exit(1)


if __name__ == "__main__":
    main()
