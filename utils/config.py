import os

from dotenv import load_dotenv

load_dotenv()

# SQLite file holding vehicles, spots, sessions and revenue
GARAGE_DB_PATH = os.getenv("GARAGE_DB_PATH", "data/garage.db")
REVENUE_CURRENCY = os.getenv("REVENUE_CURRENCY", "BRL")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
