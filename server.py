"""
Combined server that runs the interactions web app and the draw worker
Runs gunicorn in the main process, the worker in a background subprocess
"""
import os
import subprocess
import sys
import threading
import time

import config
from giveaways.database import create_db_engine, setup_giveaway_database


def run_database_migration():
    """Create giveaway tables before starting services"""
    print("📋 Running database migration...", flush=True)
    engine = create_db_engine(config.DATABASE_URL)
    setup_giveaway_database(engine)
    engine.dispose()
    print("   ✅ Database schema is up to date", flush=True)


def run_draw_worker():
    """Run the draw worker in a background subprocess"""
    print("⏰ Starting draw worker subprocess...", flush=True)
    try:
        process = subprocess.Popen(
            [sys.executable, "-u", "worker.py"],
            stdout=sys.stdout,
            stderr=sys.stderr
        )
        print(f"✅ Worker subprocess started (PID: {process.pid})", flush=True)
        process.wait()
        print(f"❌ Draw worker exited with code {process.returncode}", flush=True)
    except OSError as e:
        print(f"❌ Draw worker error: {e}", flush=True)


if __name__ == '__main__':
    print("🚀 Starting giveaway interactions server + draw worker...", flush=True)
    print(f"Python: {sys.version}", flush=True)
    print(f"Working directory: {os.getcwd()}", flush=True)

    # Schema must exist before either process touches it
    run_database_migration()

    worker_thread = threading.Thread(target=run_draw_worker, daemon=True)
    worker_thread.start()

    print("⏳ Waiting for worker to initialize...", flush=True)
    time.sleep(3)

    print("📡 Starting interactions server with Gunicorn...", flush=True)
    print(f"🌐 Port: {config.PORT}", flush=True)

    try:
        os.execvp('gunicorn', [
            'gunicorn',
            '--bind', f'0.0.0.0:{config.PORT}',
            '--workers', '2',
            '--timeout', '120',
            '--access-logfile', '-',
            '--error-logfile', '-',
            'app:app'
        ])
    except OSError as e:
        print(f"❌ Failed to start Gunicorn: {e}", flush=True)
        sys.exit(1)
