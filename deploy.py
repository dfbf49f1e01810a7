#!/usr/bin/env python3
"""Deploy helper: create default config, folders, and systemd service for the printer service."""

import argparse
import os
import subprocess
import sys
from pathlib import Path

# Folders
DIRS = ["logs"]

# Default .env template (safe for first run: simulation mode until a port is set)
ENV_TEMPLATE = """# Household task printer - production config
# Set SERIAL_PORT and MOCK_PRINTER=false once the printer is attached

SERIAL_PORT=/dev/ttyUSB0
BAUDRATE=9600
MOCK_PRINTER=true
CODEPAGE_ID=3
PRINTER_ENCODING=cp860
LINE_WIDTH=32
PRINT_TIMEOUT_SECONDS=5
DATABASE_PATH=database.sqlite
SCAN_INTERVAL_SECONDS=900
REMINDER_INTERVAL_SECONDS=300
DEDUPE_NOTIFICATIONS=false
"""

SERVICE_NAME = "task-printer"


def get_systemd_service_content(base: Path, user: str) -> str:
    """Generate systemd service file for service.py in virtual environment."""
    base_str = str(base)
    return f"""[Unit]
Description=Household task thermal printer
After=network.target

[Service]
Type=simple
User={user}
WorkingDirectory={base_str}
ExecStart={base_str}/venv/bin/python service.py
Restart=always
RestartSec=10

[Install]
WantedBy=multi-user.target
"""


def install_service(service_path: Path) -> None:
    """Copy the unit into systemd and enable it (requires sudo)."""
    subprocess.run(["sudo", "cp", str(service_path), "/etc/systemd/system/"], check=True)
    subprocess.run(["sudo", "systemctl", "daemon-reload"], check=True)
    subprocess.run(["sudo", "systemctl", "enable", SERVICE_NAME], check=True)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Set up the task printer service for production")
    parser.add_argument(
        "--install-service",
        action="store_true",
        help="Install systemd service (requires sudo)",
    )
    parser.add_argument(
        "--user",
        default=os.environ.get("SUDO_USER", os.environ.get("USER", "pi")),
        help="User to run the service (default: pi or current user)",
    )
    parser.add_argument("--base", type=Path, default=Path(__file__).resolve().parent, help=argparse.SUPPRESS)
    args = parser.parse_args(argv)

    base: Path = args.base

    for name in DIRS:
        path = base / name
        path.mkdir(exist_ok=True)
        print(f"Created directory: {path}")

    env_path = base / ".env"
    if env_path.exists():
        print(f"Config already exists: {env_path}")
    else:
        env_path.write_text(ENV_TEMPLATE, encoding="utf-8")
        print(f"Created config: {env_path}")
        print("  -> Edit .env and set SERIAL_PORT, DATABASE_PATH before running.")

    service_path = base / f"{SERVICE_NAME}.service"
    service_path.write_text(get_systemd_service_content(base, args.user), encoding="utf-8")
    print(f"Generated systemd service: {service_path}")

    if not args.install_service:
        print("  -> To install the service: python deploy.py --install-service")
        return 0

    if sys.platform != "linux":
        print("Warning: systemd install is supported on Linux only.")
        return 0
    try:
        install_service(service_path)
    except subprocess.CalledProcessError as e:
        print(f"Service installation failed: {e}", file=sys.stderr)
        return 1
    print(f"Service installed and enabled. Start with: sudo systemctl start {SERVICE_NAME}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
