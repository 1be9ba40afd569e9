import argparse
import time
import schedule
import logging
import sys
from config import app_config
from database.config import SessionLocal, init_db
from services.maintenance import run_maintenance

# Configure Logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler("maintenance_worker.log")
    ]
)

def run_maintenance_cycle():
    logging.info("Starting maintenance cycle...")
    db = SessionLocal()
    try:
        result = run_maintenance(db)
        logging.info(f"Cycle complete: {result}")
    except Exception as e:
        db.rollback()
        logging.error(f"Error in maintenance cycle: {e}")
    finally:
        db.close()

def start_scheduler():
    interval = app_config.MAINTENANCE_INTERVAL_MINUTES
    logging.info(f"Starting maintenance scheduler (every {interval} minutes)...")
    # Run once immediately
    run_maintenance_cycle()

    schedule.every(interval).minutes.do(run_maintenance_cycle)

    while True:
        schedule.run_pending()
        time.sleep(60)

def main():
    parser = argparse.ArgumentParser(description="Collabzz maintenance worker: expires boosts and memberships, flags overdue EMIs")
    parser.add_argument("--mode", choices=["once", "schedule"], default="schedule", help="Run once or schedule")
    args = parser.parse_args()

    init_db()
    if args.mode == "schedule":
        start_scheduler()
    else:
        run_maintenance_cycle()

if __name__ == "__main__":
    main()
