#!/usr/bin/env python3
"""
Entry point for the FTP client UI.

Checks that the UI dependencies and files are in place, then replaces the
current process with `streamlit run ftpclient/ui/app.py`.

Environment:
    FTP_UI_HOST        address Streamlit binds to (default 0.0.0.0)
    FTP_UI_PORT        port Streamlit listens on (default 8501)
    CLIENT_FAST_START  skip the startup checks when set to 1/true/yes
"""

import argparse
import importlib.util
import logging
import os
import subprocess
import sys

logger = logging.getLogger("ftpclient")

FAST_START = os.getenv('CLIENT_FAST_START', '0').lower() in ('1', 'true', 'yes')
PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))
APP_PATH = os.path.join(PACKAGE_DIR, 'ui', 'app.py')


def verify_dependencies():
    """
    Verify that all required Python modules are available.
    """
    if FAST_START:
        logger.info("FAST_START enabled — skipping dependency verification")
        return True

    for module in ('streamlit',):
        if importlib.util.find_spec(module) is None:
            logger.error(f"✗ Missing required module: {module}")
            logger.error(f"  Install it with: pip install {module}")
            return False
        logger.info(f"✓ {module} available")
    return True


def verify_project_structure():
    if FAST_START:
        logger.info("FAST_START enabled — skipping project structure verification")
        return True

    required_files = [
        APP_PATH,
        os.path.join(PACKAGE_DIR, 'ui', 'levenstein.py'),
        os.path.join(PACKAGE_DIR, 'core', '__init__.py'),
        os.path.join(PACKAGE_DIR, 'core', 'connection.py'),
        os.path.join(PACKAGE_DIR, 'core', 'data_connection.py'),
        os.path.join(PACKAGE_DIR, 'core', 'commands.py'),
        os.path.join(PACKAGE_DIR, 'core', 'parser.py'),
    ]
    missing_files = [path for path in required_files if not os.path.exists(path)]
    for path in missing_files:
        logger.warning(f"✗ Missing file: {path}")
    if missing_files:
        logger.error(f"Missing {len(missing_files)} required files")
        return False
    return True


def build_command(host: str, port: int):
    return [
        'streamlit',
        'run',
        APP_PATH,
        f'--server.port={port}',
        f'--server.address={host}',
        '--logger.level=info',
        '--client.showErrorDetails=true',
        '--browser.gatherUsageStats=false',
    ]


def start_streamlit_client(host: str, port: int):
    """
    Start the Streamlit FTP client UI.
    """
    logger.info(f"Starting Streamlit FTP Client UI on {host}:{port}...")
    cmd = build_command(host, port)

    # Replace the current process with the Streamlit process for proper signal handling
    try:
        os.execvp(cmd[0], cmd)
    except OSError as e:
        logger.error(f"Failed to exec Streamlit: {e}")
        try:
            subprocess.run([sys.executable, '-m'] + cmd, check=True)
        except subprocess.CalledProcessError as e2:
            logger.error(f"Streamlit exited with error code {e2.returncode}")
            sys.exit(e2.returncode)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Launch the FTP client UI")
    parser.add_argument("--host", default=os.getenv('FTP_UI_HOST', '0.0.0.0'),
                        help="Address the UI binds to")
    parser.add_argument("--port", type=int, default=int(os.getenv('FTP_UI_PORT', '8501')),
                        help="Port the UI listens on")
    return parser.parse_args(argv)


def main(argv=None):
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    args = parse_args(argv)

    if not verify_dependencies():
        logger.error("Dependency verification failed")
        sys.exit(1)
    if not verify_project_structure():
        logger.error("Project structure verification failed")
        sys.exit(1)

    start_streamlit_client(args.host, args.port)


if __name__ == '__main__':
    main()
