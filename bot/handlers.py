from aiogram import types, Router
from aiogram.filters import Command
from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup, CallbackQuery
from aiogram.utils.keyboard import InlineKeyboardBuilder
from data.config import SHOP_ICONS
from data.models import Granularity, Order
from data.operations import get_order_count
from bot.dashboard import Dashboard
from bot.state import DashboardState
from utils.helpers import is_admin, format_korea_datetime, format_won

router = Router()

ACCESS_DENIED = "⛔️ 접근 권한이 없습니다. 관리자만 사용할 수 있습니다."
MAX_ORDERS_SHOWN = 20
MAX_DATE_BUTTONS = 12
CHART_WIDTH = 16

GRANULARITY_TITLES = {
    Granularity.DAILY: "일별",
    Granularity.MONTHLY: "월별",
}

# 1. Rendering
def _shop_title(shop: str) -> str:
    return f"{SHOP_ICONS.get(shop, '🏪')} {shop}"

def _format_order(order: Order) -> str:
    lines = [
        f"🧾 주문번호: {order.order_number}",
        f"💰 총액: {format_won(order.total_price)}",
        "🍽️ 메뉴:",
    ]
    for item in order.items:
        lines.append(f"- {item.name} x{item.quantity}")
    lines.append(f"⏰ {format_korea_datetime(order.timestamp)}")
    return "\n".join(lines)

def _format_orders_view(state: DashboardState) -> str:
    lines = [f"{_shop_title(state.shop)} · 주문 목록"]
    if state.degraded:
        lines.append(f"⚠️ {state.degraded}")
    if not state.orders:
        lines.append("\n📭 주문이 없습니다.")
        return "\n".join(lines)
    for order in state.orders[:MAX_ORDERS_SHOWN]:
        lines.append("")
        lines.append(_format_order(order))
    hidden = len(state.orders) - MAX_ORDERS_SHOWN
    if hidden > 0:
        lines.append(f"\n… 외 {hidden}건")
    return "\n".join(lines)

def _format_chart(state: DashboardState) -> str:
    series = state.stats.series
    if not series:
        return "📉 집계된 매출이 없습니다."
    peak = max(point.total for point in series) or 1
    rows = []
    for point in series:
        bar = "█" * max(1 if point.total else 0, round(point.total / peak * CHART_WIDTH))
        rows.append(f"{point.period} {bar} {format_won(point.total)}")
    return "\n".join(rows)

def _format_stats_view(state: DashboardState) -> str:
    title = GRANULARITY_TITLES[Granularity(state.granularity)]
    lines = [f"{_shop_title(state.shop)} · {title} 매출 통계"]
    if state.degraded:
        lines.append(f"⚠️ {state.degraded}")
    lines.append("")
    lines.append(_format_chart(state))
    lines.append("")
    lines.append(f"📊 {title} 메뉴별 판매금액")

    selected = state.stats.selected_period
    breakdown = state.stats.menus.get(selected) if selected else None
    if breakdown:
        lines.append(f"📅 {selected}")
        for name, entry in breakdown.items():
            lines.append(f"• {name} (총 {entry.quantity}개): {format_won(entry.total)}")
    else:
        lines.append("해당 날짜의 데이터가 없습니다.")

    lines.append("")
    lines.append(f"💵 총 매출: {format_won(state.total_sales)}")
    return "\n".join(lines)

def _format_view(state: DashboardState) -> str:
    return _format_stats_view(state) if state.show_stats else _format_orders_view(state)

# 2. Keyboards
def _build_shops_kb(dashboard: Dashboard) -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    for shop in dashboard.shops:
        mark = "✅ " if shop == dashboard.state.shop else ""
        kb.row(InlineKeyboardButton(text=f"{mark}{_shop_title(shop)}", callback_data=f"shop:{shop}"))
    return kb.as_markup()

def _build_view_kb(state: DashboardState) -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    if state.show_stats:
        kb.row(*[
            InlineKeyboardButton(
                text=("🔵 " if state.granularity == granularity else "") + f"{title} 매출",
                callback_data=f"stats:gran:{granularity.value}",
            )
            for granularity, title in GRANULARITY_TITLES.items()
        ])
        periods = [point.period for point in state.stats.series][-MAX_DATE_BUTTONS:]
        for i in range(0, len(periods), 3):
            kb.row(*[
                InlineKeyboardButton(
                    text=("📅 " if period == state.stats.selected_period else "") + period,
                    callback_data=f"stats:date:{period}",
                )
                for period in periods[i:i + 3]
            ])
    kb.row(
        InlineKeyboardButton(text="🗑 초기화", callback_data="reset:ask"),
        InlineKeyboardButton(
            text="주문 목록 보기" if state.show_stats else "매출 통계 보기",
            callback_data="view:toggle",
        ),
    )
    return kb.as_markup()

def _build_reset_confirmation_kb() -> InlineKeyboardMarkup:
    kb = InlineKeyboardBuilder()
    kb.row(InlineKeyboardButton(text="✅ 네, 초기화", callback_data="reset:confirm"))
    kb.row(InlineKeyboardButton(text="❌ 취소", callback_data="reset:cancel"))
    return kb.as_markup()

async def _show_view(callback: CallbackQuery, state: DashboardState) -> None:
    text, markup = _format_view(state), _build_view_kb(state)
    # Telegram rejects an edit that changes nothing
    if callback.message.text == text and callback.message.reply_markup == markup:
        return
    await callback.message.edit_text(text, reply_markup=markup)

# 3. Commands
@router.message(Command("start"))
async def cmd_start(message: types.Message, dashboard: Dashboard):
    if not is_admin(message.from_user.id):
        await message.answer(ACCESS_DENIED)
        return
    dashboard.mark_interacted(message.from_user.id)
    await message.answer(
        f"👋 안녕하세요, {message.from_user.full_name}님! 새 주문 알림이 켜졌습니다.\n"
        f"현재 매장: {_shop_title(dashboard.state.shop)}\n\n"
        "/help 로 명령어를 확인하세요."
    )

@router.message(Command("help"))
async def cmd_help(message: types.Message):
    if not is_admin(message.from_user.id):
        await message.answer(ACCESS_DENIED)
        return
    help_text = """🔧 사용 가능한 명령어:

/start — 알림 켜기
/shops — 매장 선택
/orders — 실시간 주문 목록
/stats [daily|monthly] — 매출 통계
/toggle — 주문 목록 / 매출 통계 전환
/reset — 선택한 매장의 주문 초기화 (통계는 유지)"""
    await message.answer(help_text)

@router.message(Command("shops"))
async def cmd_shops(message: types.Message, dashboard: Dashboard):
    if not is_admin(message.from_user.id):
        await message.answer(ACCESS_DENIED)
        return
    await message.answer("🏪 매장을 선택하세요:", reply_markup=_build_shops_kb(dashboard))

@router.message(Command("orders"))
async def cmd_orders(message: types.Message, dashboard: Dashboard):
    if not is_admin(message.from_user.id):
        await message.answer(ACCESS_DENIED)
        return
    if dashboard.state.show_stats:
        await dashboard.toggle_view()
    await message.answer(_format_view(dashboard.state), reply_markup=_build_view_kb(dashboard.state))

@router.message(Command("stats"))
async def cmd_stats(message: types.Message, dashboard: Dashboard):
    if not is_admin(message.from_user.id):
        await message.answer(ACCESS_DENIED)
        return
    parts = (message.text or "").split()
    granularity = None
    if len(parts) > 1:
        try:
            granularity = Granularity(parts[1].lower())
        except ValueError:
            await message.answer("사용법: /stats [daily|monthly]")
            return
    if not dashboard.state.show_stats:
        await dashboard.toggle_view()
    if granularity is not None:
        await dashboard.select_granularity(granularity)
    await message.answer(_format_view(dashboard.state), reply_markup=_build_view_kb(dashboard.state))

@router.message(Command("toggle"))
async def cmd_toggle(message: types.Message, dashboard: Dashboard):
    if not is_admin(message.from_user.id):
        await message.answer(ACCESS_DENIED)
        return
    await dashboard.toggle_view()
    await message.answer(_format_view(dashboard.state), reply_markup=_build_view_kb(dashboard.state))

@router.message(Command("reset"))
async def cmd_reset(message: types.Message, dashboard: Dashboard):
    if not is_admin(message.from_user.id):
        await message.answer(ACCESS_DENIED)
        return
    count = await get_order_count(dashboard.state.shop)
    await message.answer(
        f"⚠️ {_shop_title(dashboard.state.shop)}의 모든 주문을 삭제하고 주문번호를 {count}에서 0으로 되돌립니다.\n"
        "매출 통계는 유지됩니다. 계속할까요?",
        reply_markup=_build_reset_confirmation_kb(),
    )

# 4. Callbacks
@router.callback_query(lambda c: c.data and c.data.startswith("shop:"))
async def cb_select_shop(callback: CallbackQuery, dashboard: Dashboard):
    if not is_admin(callback.from_user.id):
        await callback.answer("권한 없음", show_alert=True)
        return
    shop = callback.data.split(":", 1)[1]
    try:
        state = await dashboard.select_shop(shop)
    except ValueError:
        await callback.answer("알 수 없는 매장", show_alert=True)
        return
    await _show_view(callback, state)
    await callback.answer(f"{_shop_title(shop)} 선택됨")

@router.callback_query(lambda c: c.data == "view:toggle")
async def cb_toggle_view(callback: CallbackQuery, dashboard: Dashboard):
    if not is_admin(callback.from_user.id):
        await callback.answer("권한 없음", show_alert=True)
        return
    state = await dashboard.toggle_view()
    await _show_view(callback, state)
    await callback.answer()

@router.callback_query(lambda c: c.data and c.data.startswith("stats:"))
async def cb_stats(callback: CallbackQuery, dashboard: Dashboard):
    if not is_admin(callback.from_user.id):
        await callback.answer("권한 없음", show_alert=True)
        return
    # Patterns: stats:gran:<daily|monthly> | stats:date:<period>
    parts = callback.data.split(":", 2)
    if len(parts) != 3:
        await callback.answer("잘못된 요청", show_alert=True)
        return
    action, value = parts[1], parts[2]
    if action == "gran":
        try:
            granularity = Granularity(value)
        except ValueError:
            await callback.answer("잘못된 요청", show_alert=True)
            return
        state = await dashboard.select_granularity(granularity)
    elif action == "date":
        state = dashboard.select_date(value)
    else:
        await callback.answer("잘못된 요청", show_alert=True)
        return
    await _show_view(callback, state)
    await callback.answer()

@router.callback_query(lambda c: c.data and c.data.startswith("reset:"))
async def cb_reset(callback: CallbackQuery, dashboard: Dashboard):
    if not is_admin(callback.from_user.id):
        await callback.answer("권한 없음", show_alert=True)
        return
    action = callback.data.split(":", 1)[1]
    if action == "ask":
        await callback.message.edit_text(
            f"⚠️ {_shop_title(dashboard.state.shop)}의 모든 주문을 삭제할까요? 매출 통계는 유지됩니다.",
            reply_markup=_build_reset_confirmation_kb(),
        )
        await callback.answer()
        return
    if action == "confirm":
        deleted = await dashboard.reset()
        state = dashboard.state
        await _show_view(callback, state)
        if deleted is None:
            await callback.answer("초기화 실패", show_alert=True)
        else:
            await callback.answer(f"✅ 주문 {deleted}건 삭제")
        return
    state = dashboard.state
    await _show_view(callback, state)
    await callback.answer("취소됨")
