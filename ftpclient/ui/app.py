import sys
import os

# Ensure project root is on sys.path so `import ftpclient` resolves when Streamlit runs
# (Streamlit runs the script from its directory which can make package imports fail)
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..', '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from datetime import datetime
import traceback
import logging

from ftpclient.core import ClientCommandHandler, ControlConnectionManager, FTPError
from ftpclient.ui.levenstein import get_suggestion

import streamlit as st

# Configure logging for Streamlit app
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


st.set_page_config(page_title="FTP Client UI", layout="wide")

# --- Helpers -----------------------------------------------------------------

def progress_callback(bar, label: str):
    """Returns an (total, current) callback that drives a Streamlit progress bar."""
    def update(total, current):
        if total:
            bar.progress(min(100, int(current * 100 / total)), text=f"{label}: {current}/{total} bytes")
        else:
            bar.progress(0, text=f"{label}: {current} bytes")
    return update


def show_reply(reply):
    if reply is None:
        return
    if reply.is_error:
        st.error(f"{reply.code} — {reply.text}")
    else:
        st.success(f"{reply.code} — {reply.text}")


def run_command(handler: ClientCommandHandler, verb: str, args: list, uploaded_file):
    if verb == "pwd":
        st.write(f"Current directory: `{handler.pwd()}`")
    elif verb in ("cwd", "mkd", "rmd", "dele"):
        if not args:
            st.error(f"Usage: {verb.upper()} path")
            return
        show_reply(getattr(handler, verb)(" ".join(args)))
    elif verb in ("cdup", "noop"):
        show_reply(getattr(handler, verb)())
    elif verb == "rename":
        if len(args) != 2:
            st.error("Usage: RENAME source target")
            return
        show_reply(handler.rename(args[0], args[1]))
    elif verb == "list":
        with st.spinner("Fetching listing..."):
            files = handler.list(" ".join(args))
        st.dataframe([f.to_dict() for f in files], use_container_width=True)
        show_reply(handler.get_history()[-1]["reply"])
    elif verb == "retr":
        if not args:
            st.error("Usage: RETR remote_filename")
            return
        remote = " ".join(args)
        bar = st.progress(0, text="Downloading...")
        content = handler.retr(remote, on_bytes_read=progress_callback(bar, remote))
        bar.progress(100, text=f"{remote}: {len(content)} bytes")
        st.session_state["download"] = (os.path.basename(remote), content)
        show_reply(handler.get_history()[-1]["reply"])
    elif verb == "stor":
        if uploaded_file is None:
            logger.warning("[UI] No file uploaded for STOR")
            st.error("Select a file to upload using the uploader above.")
            return
        remote = " ".join(args) or uploaded_file.name
        bar = st.progress(0, text="Uploading...")
        reply = handler.stor(remote, uploaded_file.getvalue(), on_bytes_write=progress_callback(bar, remote))
        show_reply(reply)
    elif verb == "quit":
        show_reply(handler.quit())
        st.session_state["handler"] = None
    else:
        logger.warning(f"[UI] Unknown command: {verb}")
        st.error(f"Unknown command: {verb.upper()}")
        suggestion = get_suggestion(verb)
        if suggestion:
            st.write(f"Try with {suggestion}")


# --- UI ----------------------------------------------------------------------
st.title("FTP Client")

if "handler" not in st.session_state:
    st.session_state["handler"] = None

with st.sidebar:
    st.header("Connection")
    host = st.text_input("Host", value="127.0.0.1")
    port = st.number_input("Port", min_value=1, max_value=65535, value=21)
    timeout = st.number_input("Timeout (s)", min_value=1.0, max_value=60.0, value=10.0)
    user = st.text_input("User", value="anonymous")
    password = st.text_input("Password", type="password")
    if st.button("Connect"):
        logger.info(f"[UI] Connect button clicked: {host}:{port}")
        handler = ClientCommandHandler(ControlConnectionManager(timeout=float(timeout)))
        try:
            greeting = handler.connect(host, int(port))
            st.info(f"{greeting.code} — {greeting.text}")
            handler.login(user, password)
            st.session_state["handler"] = handler
            st.success(f"Connected to {host}:{port} as {user}")
        except (FTPError, ConnectionError) as e:
            logger.error(f"[UI] Connection failed: {e}")
            handler.close()
            st.session_state["handler"] = None
            st.session_state["tmp_history"] = handler.get_history()
            st.error(f"Connection failed: {e}")
    if st.button("Disconnect"):
        logger.info("[UI] Disconnect button clicked")
        handler = st.session_state.get("handler")
        if handler:
            handler.close()
            st.session_state["handler"] = None
            st.info("Disconnected")


col1, col2 = st.columns([3, 1])

with col1:
    st.subheader("Terminal")
    cmd = st.text_input("Command", placeholder="e.g. LIST, CWD docs, RENAME a.txt b.txt", key="cmd_input")
    cmd_run = st.button("Run")

    # File upload for STOR
    uploaded_file = st.file_uploader("Upload file for STOR", key="upload_file")

    if cmd_run and cmd:
        logger.info(f"[UI] Command executed: {cmd}")
        handler: ClientCommandHandler = st.session_state.get("handler")
        if not handler:
            logger.warning("[UI] Not connected")
            st.error("Not connected. Connect first.")
        else:
            parts = cmd.strip().split()
            try:
                run_command(handler, parts[0].lower(), parts[1:], uploaded_file)
            except FTPError as e:
                logger.error(f"[UI] Command error: {e!r}")
                st.error(f"Error: {e}")
            except OSError as e:
                logger.error(f"[UI] Transport error: {traceback.format_exc()}")
                st.error(f"Connection error: {e}")

    download = st.session_state.get("download")
    if download:
        name, content = download
        st.download_button(f"Save {name}", data=content, file_name=name)

with col2:
    st.subheader("History")
    handler: ClientCommandHandler = st.session_state.get("handler")
    if handler is None:
        st.info("No history: not connected")
        hist = st.session_state.get("tmp_history", [])
    else:
        hist = handler.get_history()
        if st.button("Clear History"):
            handler.clear_history()
            st.rerun()
    for entry in reversed(hist[-100:]):
        t = entry.get("time")
        time_str = t.isoformat() if isinstance(t, datetime) else str(t)
        with st.expander(f"{time_str} — {entry.get('command')}"):
            reply = entry.get("reply")
            if reply is not None:
                st.write(f"Code: {reply.code}")
                st.write(f"Type: {reply.type}")
                st.code(reply.text)
            if entry.get("message"):
                st.code(entry.get("message"))
            if entry.get("size") is not None:
                st.write(f"Bytes: {entry.get('size')}")
            if entry.get("error"):
                st.error("This entry had an error")


# Footer
st.markdown("---")
st.caption("FTP Streamlit UI — passive-mode transfers with live progress and command history.")
