# messages.py
from flask import Blueprint, current_app, jsonify, redirect, render_template, url_for
from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from core.context import auth_required, json_error, request_data, wants_json
from core.errors import NotFound
from models import Message

bp = Blueprint("messages", __name__)

MAX_CONTENT_LENGTH = 2000


def _engine():
    return current_app.extensions["messageboard"].engine


def message_to_json(m: Message) -> dict:
    return {
        "id": m.id,
        "content": m.content,
        "author_id": m.author_id,
        "author": m.author.name if m.author else None,
        "created_at": m.created_at.isoformat() + "Z",
    }


def _list_messages() -> list[Message]:
    with Session(_engine(), expire_on_commit=False) as s:
        return list(
            s.scalars(
                select(Message)
                .options(selectinload(Message.author))
                .order_by(Message.created_at.desc(), Message.id.desc())
            )
        )


@bp.get("/")
def root():
    return redirect(url_for("messages.index"))


@bp.get("/messages")
@auth_required()
def index(ctx):
    items = _list_messages()
    if wants_json():
        return jsonify({"ok": True, "items": [message_to_json(m) for m in items]})
    return render_template("messages.html", ctx=ctx, messages=items, errors={})


@bp.post("/messages")
@auth_required(admin=True)
def create(ctx):
    content = str(request_data().get("content") or "").strip()

    errors = {}
    if not content:
        errors["content"] = "Message must not be empty"
    elif len(content) > MAX_CONTENT_LENGTH:
        errors["content"] = f"Message must have at most {MAX_CONTENT_LENGTH} characters"
    if errors:
        if wants_json():
            return json_error("validation_error", 400, errors)
        return render_template("messages.html", ctx=ctx, messages=_list_messages(), errors=errors), 400

    with Session(_engine(), expire_on_commit=False) as s:
        m = Message(content=content, author_id=ctx.account_id)
        s.add(m)
        s.commit()
        current_app.logger.info("Message %s posted by account %s", m.id, ctx.account_id)
        payload = {"ok": True, "id": m.id}

    if wants_json():
        return jsonify(payload), 201
    return redirect(url_for("messages.index"))


@bp.post("/messages/<int:message_id>/delete")
@auth_required(admin=True)
def delete(message_id: int, ctx):
    with Session(_engine()) as s:
        m = s.get(Message, message_id)
        if not m:
            raise NotFound("message_not_found")
        s.delete(m)
        s.commit()
    current_app.logger.info("Message %s deleted by account %s", message_id, ctx.account_id)

    if wants_json():
        return jsonify({"ok": True, "deleted": True})
    return redirect(url_for("messages.index"))
