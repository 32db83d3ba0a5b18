"""
app.py — Hero Card Preview
Streamlit entry point.

Flow:
  1. Load players.json (local file, or PLAYERS_DATA_URL when set)
  2. Pick a player
  3. Render the hero card and post-activity stats
"""

import json
import os
import logging

import requests
import streamlit as st
from dotenv import load_dotenv

load_dotenv()  # local .env

# ─── Page config (must be first Streamlit call) ───────────────────────────────
st.set_page_config(
    page_title="Hero Card Preview",
    page_icon="🎮",
    layout="wide",
    initial_sidebar_state="collapsed",
)

# ─── Imports (after set_page_config) ─────────────────────────────────────────
from config import APP_SUBTITLE, APP_TITLE, FORUM_REQUEST_TIMEOUT, PLAYERS_DATA_URL, PLAYERS_FILE
from core.updater import load_players
from ui.components import (
    render_hero,
    render_hero_card,
    render_players_table,
    render_post_stats,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# ─── Cached data load (st.cache_data = in-memory, 2 min TTL) ─────────────────
@st.cache_data(ttl=120, show_spinner=False)
def _load_document(source: str) -> dict:
    if source.startswith(("http://", "https://")):
        response = requests.get(source, timeout=FORUM_REQUEST_TIMEOUT)
        response.raise_for_status()
        return response.json()
    return load_players(source)


# ─── UI Layout ────────────────────────────────────────────────────────────────
render_hero(APP_TITLE, APP_SUBTITLE)

source = PLAYERS_DATA_URL or PLAYERS_FILE
try:
    document = _load_document(source)
except (requests.RequestException, OSError, json.JSONDecodeError) as exc:
    st.error(f"⚠️ Could not load player data from `{source}`: {exc}")
    logger.exception("Player data load failed")
    st.stop()

players = document.get("players", {})
if not players:
    st.info("No players yet. Run `python run_update.py` to fetch the member list.")
    st.stop()

st.caption(
    f"Data updated {document.get('last_updated', '—')} · "
    f"posts analysed {document.get('posts_analyzed_at', 'never')} · "
    f"{len(players)} players · source `{os.path.basename(source) or source}`"
)

selected = st.selectbox("Player", sorted(players), index=0)

left_col, right_col = st.columns([1, 2])
with left_col:
    render_hero_card(selected, players[selected])
with right_col:
    st.markdown("#### Post activity")
    render_post_stats(players[selected].get("forum_data", {}).get("post_stats"))

st.markdown("---")
st.markdown("#### All players")
render_players_table(players)
