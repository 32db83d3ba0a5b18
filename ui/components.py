"""
ui/components.py — Streamlit components for the hero-card preview.
"""

import datetime

import streamlit as st

HERO_CARD_CSS = """
<style>
.hero-card{background:linear-gradient(135deg,#1a1a1a 0%,#2d2d2d 100%);color:#fff;padding:20px;
  border-radius:12px;border-left:6px solid #ff6b00;box-shadow:0 4px 15px rgba(0,0,0,0.3);margin:10px 0}
.hero-card-header{display:flex;justify-content:space-between;align-items:center;margin-bottom:15px;
  border-bottom:1px solid #444;padding-bottom:10px}
.hero-card-title{margin:0;color:#ff6b00;font-size:1.3em}
.badge{padding:4px 8px;border-radius:12px;font-size:0.8em;font-weight:700;margin-left:6px}
.badge-reputation{background:#ffd700;color:#000}
.badge-posts{background:#2196F3;color:#fff}
.stat-row{display:flex;justify-content:space-between;margin:8px 0}
.stat-label{font-weight:700;color:#ccc}
.stat-value{font-weight:700;font-size:1.1em}
.hero-card-bonuses{background:rgba(255,107,0,0.1);padding:10px;border-radius:6px;
  border-left:3px solid #ff6b00;margin-top:10px;font-size:0.85em;color:#ccc}
.hero-card-footer{text-align:center;padding-top:10px;font-size:0.7em;color:#666}
</style>
"""


# ─── Stat Colours ─────────────────────────────────────────────────────────────

def infection_color(level: float) -> str:
    if level < 25:
        return "#4CAF50"
    if level < 50:
        return "#FF9800"
    if level < 75:
        return "#F44336"
    return "#9C27B0"


def whisper_color(level: float) -> str:
    if level < 0:
        return "#2196F3"
    if level < 25:
        return "#4CAF50"
    if level < 50:
        return "#FF9800"
    return "#F44336"


def infection_icon(level: float) -> str:
    if level >= 75:
        return "🔴"
    if level >= 50:
        return "🟠"
    if level >= 25:
        return "🟡"
    return "🟢"


def whisper_icon(level: float) -> str:
    if level < 0:
        return "🔵"
    if level >= 50:
        return "🔴"
    if level >= 25:
        return "🟠"
    return "🟢"


# ─── Components ───────────────────────────────────────────────────────────────

def render_hero(title: str, subtitle: str):
    """Render the page header."""
    st.markdown(HERO_CARD_CSS, unsafe_allow_html=True)
    st.title(title)
    st.caption(subtitle)


def _signed(value) -> str:
    return f"+{value}" if value > 0 else f"{value}"


def bonuses_html(bonuses: dict) -> str:
    entries = []
    if bonuses.get("credits"):
        entries.append(f"Credits bonus: {_signed(bonuses['credits'])}")
    if bonuses.get("infection"):
        entries.append(f"Infection bonus: {_signed(bonuses['infection'])}%")
    if bonuses.get("whisper"):
        entries.append(f"Whisper bonus: {_signed(bonuses['whisper'])}%")
    if not entries:
        return "<div>No active bonuses</div>"
    return "".join(f"<div>{entry}</div>" for entry in entries)


def render_hero_card(name: str, player: dict):
    """Render one player's hero card."""
    forum_data = player.get("forum_data", {})
    game_stats = player.get("game_stats", {})
    infection = game_stats.get("infection", {}).get("total", 0)
    whisper = game_stats.get("whisper", {}).get("total", 0)
    credits = game_stats.get("credits", 0)

    updated = player.get("last_updated")
    updated_str = updated
    if updated:
        try:
            updated_str = datetime.datetime.fromisoformat(
                updated.replace("Z", "+00:00")
            ).strftime("%Y-%m-%d %H:%M")
        except ValueError:
            pass

    st.markdown(
        f"""
        <div class="hero-card">
            <div class="hero-card-header">
                <h3 class="hero-card-title">🎮 {name}</h3>
                <div>
                    <span class="badge badge-reputation">⭐ {forum_data.get('positive_reputation', 0)}</span>
                    <span class="badge badge-posts">📊 {forum_data.get('posts', 0)}</span>
                </div>
            </div>
            <div class="stat-row"><span class="stat-label">💰 Credits</span>
                <span class="stat-value" style="color:gold">{credits:,}</span></div>
            <div class="stat-row"><span class="stat-label">⚡ Infection</span>
                <span class="stat-value" style="color:{infection_color(infection)}">
                {infection}% {infection_icon(infection)}</span></div>
            <div class="stat-row"><span class="stat-label">👁 Whisper</span>
                <span class="stat-value" style="color:{whisper_color(whisper)}">
                {whisper}% {whisper_icon(whisper)}</span></div>
            <div class="stat-row"><span class="stat-label">📅 On forum</span>
                <span>{forum_data.get('days_since_registration', 0)} days</span></div>
            <div class="stat-row"><span class="stat-label">🕐 Last seen</span>
                <span>{forum_data.get('last_online', '—')}</span></div>
            <div class="hero-card-bonuses">{bonuses_html(player.get('bonuses', {}))}</div>
            <div class="hero-card-footer">Updated: {updated_str or '—'}</div>
        </div>
        """,
        unsafe_allow_html=True,
    )


def render_post_stats(post_stats: dict | None):
    """Render the post-activity block below the card."""
    if not post_stats:
        st.info("Post history not analysed yet. Run `python run_update.py --analyze-posts`.")
        return

    trend_emoji = {"increasing": "📈", "decreasing": "📉"}.get(
        post_stats.get("activity_trend"), "➡️"
    )
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Activity score", post_stats.get("post_activity_score", 0))
    col2.metric("Game posts",     post_stats.get("game_posts", 0))
    col3.metric("Flood posts",    post_stats.get("flood_posts", 0))
    col4.metric("Technical",      post_stats.get("technical_posts", 0))

    st.markdown(
        f"**Trend:** {trend_emoji} {post_stats.get('activity_trend', 'stable')}  \n"
        f"**Last activity:** {post_stats.get('last_activity', '—')}"
    )
    distribution = post_stats.get("post_distribution") or {}
    if distribution:
        st.bar_chart(distribution)


def render_players_table(players: dict):
    """Compact overview of every player, sorted by credits."""
    rows = [
        {
            "player":    name,
            "credits":   p.get("game_stats", {}).get("credits", 0),
            "infection": p.get("game_stats", {}).get("infection", {}).get("total", 0),
            "whisper":   p.get("game_stats", {}).get("whisper", {}).get("total", 0),
            "score":     p.get("forum_data", {}).get("post_stats", {}).get("post_activity_score", 0),
        }
        for name, p in players.items()
    ]
    rows.sort(key=lambda r: r["credits"], reverse=True)
    st.dataframe(rows, use_container_width=True, hide_index=True)
