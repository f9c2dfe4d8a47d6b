"""Whale Watch: Streamlit Dashboard Entry Point.

Renders the envelopes written by the source pipelines. Feeds are read
from DASHBOARD_FEED_URL when set, otherwise from the local artifact
directories. A failed read falls back to the last good copy and the
connection indicator says so; nothing is ever filled with placeholder data.
"""

import streamlit as st
import pandas as pd
import plotly.graph_objects as go
from pathlib import Path
import sys

# Add project root to path
PROJECT_DIR = Path(__file__).resolve().parent
if str(PROJECT_DIR) not in sys.path:
    sys.path.insert(0, str(PROJECT_DIR))

from config import load_config, AppConfig
from dashboard.feed import ConnectionState, FeedLoader, FeedResult
from pipeline.cache import MemoryCache

st.set_page_config(
    page_title="Whale Watch",
    page_icon="🐋",
    layout="wide",
    initial_sidebar_state="expanded",
)

# label -> (artifact file, lives in the public dir)
FEEDS = {
    "CLOB Whale Trades": ("whale-clob-trades.json", False),
    "On-Chain Fills": ("onchain-trades.json", False),
    "Kalshi Trades": ("kalshi-whale-trades.json", False),
    "Market Activity": ("whale-trades.json", False),
    "Stored Trades": ("trades.json", True),
    "Top Markets": ("top-markets.json", False),
    "Market Panel": ("markets.json", True),
}

STATE_BADGE = {
    ConnectionState.STRONG: ":green[● Live]",
    ConnectionState.WEAK: ":orange[● Stale (last good copy)]",
    ConnectionState.ERROR: ":red[● Disconnected]",
}


@st.cache_resource
def init_config() -> AppConfig:
    return load_config()


@st.cache_resource
def init_cache() -> MemoryCache:
    # Last-known-good envelopes survive reruns of the script.
    return MemoryCache()


def get_loader(config: AppConfig, public: bool) -> FeedLoader:
    artifact_dir = config.output.public_dir if public else config.output.data_dir
    return FeedLoader(
        base_url=config.output.feed_url,
        artifact_dir=artifact_dir,
        cache=init_cache(),
    )


def render_trades(feed: FeedResult) -> None:
    summary = feed.summary
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Trades", feed.envelope.get("count", 0))
    col2.metric("Total Volume", f"${summary.get('totalVolume', 0) or 0:,.0f}")
    col3.metric("Avg Trade Size", f"${summary.get('averageTradeSize', 0) or 0:,.0f}")
    col4.metric("Unique Traders", summary.get("uniqueTraders", 0) or 0)

    df = pd.DataFrame(feed.records)
    columns = [c for c in ("market", "side", "outcome", "probability",
                           "dollarAmount", "trader", "timestamp") if c in df.columns]
    st.dataframe(df[columns], use_container_width=True, hide_index=True)

    if "timestamp" in df.columns and "dollarAmount" in df.columns:
        df["time"] = pd.to_datetime(df["timestamp"], errors="coerce", utc=True)
        df = df.dropna(subset=["time"])
        if not df.empty:
            hourly = df.set_index("time").resample("1h")["dollarAmount"].sum().reset_index()
            fig = go.Figure()
            fig.add_trace(go.Bar(
                x=hourly["time"],
                y=hourly["dollarAmount"],
                marker_color="#9C27B0",
                opacity=0.7,
            ))
            fig.update_layout(
                title="Hourly Whale Volume",
                yaxis_title="USD Volume",
                xaxis_title="Time",
                height=350,
            )
            st.plotly_chart(fig, use_container_width=True)


def render_markets(feed: FeedResult) -> None:
    summary = feed.summary
    col1, col2 = st.columns(2)
    col1.metric("Markets", feed.envelope.get("count", 0))
    col2.metric("Combined 24h Volume", f"${summary.get('totalVolume', 0) or 0:,.0f}")

    df = pd.DataFrame(feed.records)
    title_col = "title" if "title" in df.columns else "id"
    columns = [c for c in (title_col, "yes_price", "no_price", "volume",
                           "price_change_1h", "polymarket_url") if c in df.columns]
    st.dataframe(df[columns], use_container_width=True, hide_index=True)

    if "volume" in df.columns:
        fig = go.Figure(go.Bar(
            x=df["volume"],
            y=df[title_col].astype(str).str.slice(0, 60),
            orientation="h",
            marker_color="#2196F3",
        ))
        fig.update_layout(title="24h Volume", xaxis_title="USD", height=400,
                          yaxis={"autorange": "reversed"})
        st.plotly_chart(fig, use_container_width=True)


# ── Main Page ────────────────────────────────────────────────

def main():
    config = init_config()

    with st.sidebar:
        st.title("Whale Watch")
        st.caption("Large prediction-market trades across sources")
        st.divider()
        label = st.radio("Feed", list(FEEDS.keys()))
        if st.button("Refresh"):
            st.rerun()

    name, public = FEEDS[label]
    feed = get_loader(config, public).load(name)

    st.title(label)
    st.markdown(STATE_BADGE[feed.state])
    if feed.error and feed.state != ConnectionState.STRONG:
        st.caption(f"Last fetch failed: {feed.error}")

    note = feed.envelope.get("note")
    if note:
        st.caption(note)
    updated = feed.envelope.get("lastUpdated")
    if updated:
        st.caption(f"Last updated {updated}")

    if not feed.records:
        if feed.state == ConnectionState.ERROR:
            st.error("Could not load this feed and no earlier copy is available.")
        else:
            st.info("No data yet. Records will appear after the next pipeline run.")
        st.stop()

    if feed.kind == "markets":
        render_markets(feed)
    else:
        render_trades(feed)


if __name__ == "__main__":
    main()
