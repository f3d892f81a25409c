# app.py (minimal dashboard over the simulation core; every rerun advances one tick)
import streamlit as st
from tradequest.config import SimulationConfig
from tradequest.papertrade import OrderSide, OrderType
from tradequest.session import GameSession

st.set_page_config(page_title="TradeQuest — Paper Trading", layout="wide")
if "game" not in st.session_state:
    st.session_state.game = GameSession(SimulationConfig.from_env(), snapshot=st.session_state.get("snapshot"))
game: GameSession = st.session_state.game
game.advance(1)

c1, c2, c3 = st.columns(3)
c1.metric("Level", game.progression.level); c2.metric("Cash", f"{game.broker.state.cash:,.2f}"); c3.metric("Equity", f"{game.equity:,.2f}")
st.write("Watchlist", game.market.to_frame())
st.write("News", [e.headline for e in game.visible_events()] or "Quiet markets... for now.")

symbol = st.selectbox("Symbol", list(game.market.assets))
qty = st.number_input("Quantity", min_value=1, value=1, step=1)
kind = st.selectbox("Order type", [t.value for t in OrderType])
px = st.number_input("Limit/stop price", min_value=0.0, value=float(game.market.assets[symbol].price)) if kind != "market" else None
b1, b2, b3 = st.columns(3)
for col, side in ((b1, OrderSide.BUY), (b2, OrderSide.SELL)):
    if col.button(side.value.capitalize()):
        _, err = game.try_execute(side, symbol, int(qty), kind, px)
        if err: st.error(f"{err.reason.value}: {err}")
if b3.button("Reset"): game.reset()

st.write("Order book", game.books[symbol].to_frame())
st.write("Positions", game.positions_frame())
st.write("Performance", game.performance())
st.write("Badges", game.progression.badges)
eq, _, summary, trades = game.broker.results()
st.line_chart(eq); st.write(summary); st.write("Trades", trades.iloc[::-1] if not trades.empty else trades)
st.session_state.snapshot = game.snapshot()
