from lions_club.config import settings
from lions_club.models import Event
from lions_club.utils.qr import checkin_url
from lions_club.utils.time import format_local

BRAND = "🦁 北大獅子會"
BRAND_COLOR = "#1DB446"


def text(message: str) -> dict:
    return {"type": "text", "text": message}


def flex(alt_text: str, contents: dict) -> dict:
    return {"type": "flex", "altText": alt_text, "contents": contents}


def _uri_button(label: str, uri: str) -> dict:
    return {
        "type": "button",
        "style": "primary",
        "color": BRAND_COLOR,
        "action": {"type": "uri", "label": label, "uri": uri},
    }


def _bubble(lines: list[dict], button: dict) -> dict:
    return {
        "type": "bubble",
        "body": {"type": "box", "layout": "vertical", "contents": lines},
        "footer": {"type": "box", "layout": "vertical", "contents": [button]},
    }


# ---------------- Registration invites ----------------


def registration_invite(liff_url: str | None = None) -> dict:
    """Reply for LINE users who are not members yet."""
    bubble = _bubble(
        [
            {"type": "text", "text": BRAND, "weight": "bold", "size": "xl", "color": BRAND_COLOR},
            {"type": "text", "text": "您尚未註冊會員", "weight": "bold", "size": "lg", "margin": "md"},
            {
                "type": "text",
                "text": "請點擊下方按鈕完成註冊，即可享受完整的會員服務",
                "size": "sm",
                "color": "#666666",
                "wrap": True,
                "margin": "sm",
            },
        ],
        _uri_button("🚀 立即註冊", liff_url or settings.liff_url),
    )
    return flex("請註冊會員", bubble)


def follow_invite(liff_url: str | None = None) -> dict:
    bubble = _bubble(
        [
            {"type": "text", "text": "🎉 歡迎加入", "weight": "bold", "size": "xl", "color": BRAND_COLOR},
            {"type": "text", "text": "北大獅子會 LINE 官方帳號", "weight": "bold", "size": "lg"},
            {
                "type": "text",
                "text": "請完成會員註冊，即可享受完整服務",
                "size": "sm",
                "color": "#666666",
                "wrap": True,
                "margin": "md",
            },
        ],
        _uri_button("🚀 完成註冊", liff_url or settings.liff_url),
    )
    return flex("歡迎加入北大獅子會", bubble)


def welcome_back(name: str, said: str | None = None) -> dict:
    if said is None:
        return text(f"🎉 歡迎回來，{name}！\n\n感謝您重新加入北大獅子會 LINE 官方帳號！")
    return text(f"👋 歡迎回來，{name}！\n\n您說：{said}\n\n如需使用會員功能，請透過 LIFF 系統操作。")


# ---------------- Events ----------------


def checkin_notification(event: Event, base_url: str | None = None) -> dict:
    """Reminder bubble with a button that opens the event's check-in page."""
    lines = [
        {"type": "text", "text": BRAND, "weight": "bold", "size": "sm", "color": BRAND_COLOR},
        {"type": "text", "text": f"📢 {event.title}", "weight": "bold", "size": "xl", "wrap": True, "margin": "md"},
        {"type": "separator", "margin": "md"},
        {
            "type": "text",
            "text": f"📅 活動日期：{format_local(event.date)}",
            "size": "sm",
            "color": "#555555",
            "wrap": True,
            "margin": "md",
        },
    ]
    if event.location:
        lines.append(
            {"type": "text", "text": f"📍 地點：{event.location}", "size": "sm", "color": "#555555", "wrap": True}
        )
    bubble = _bubble(lines, _uri_button("🚀 立即報到", checkin_url(event.id, base_url)))  # type: ignore[arg-type]
    return flex(f"📢 報到通知｜{event.title}", bubble)


def reminder_text(event: Event) -> str:
    location = f"\n📍 地點：{event.location}" if event.location else ""
    return (
        f"{BRAND}活動提醒\n\n📅 活動：{event.title}\n⏰ 時間：{format_local(event.date)}{location}\n\n請準時參加！"
    )


def upcoming_events(events: list[Event]) -> dict:
    if not events:
        return text("目前沒有即將舉行的活動。")
    rows = [f"#{ev.id} {ev.title}｜{format_local(ev.date)}" for ev in events]
    return text("📅 近期活動\n\n" + "\n".join(rows) + "\n\n輸入「簽到 活動編號」即可報到。")


def checkin_done(event: Event) -> dict:
    return text(f"✅ 簽到成功！\n\n活動：{event.title}\n時間：{format_local(event.date)}")


def checkin_failed(reason: str) -> dict:
    return text(f"⚠️ 簽到失敗：{reason}")
