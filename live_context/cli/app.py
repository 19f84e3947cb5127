from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import AsyncIterator, Callable, Coroutine, Iterable
from contextlib import asynccontextmanager
from typing import Any

from live_context import LiveContext
from live_context.cli import output as out
from live_context.cli.config import (
    Config,
    config_exists,
    config_path_display,
    load_config,
    save_config,
)
from live_context.models import Conversation, UnitType
from live_context.store import ChangePolicy

DESCRIPTION = """\
live-context · curate what your model remembers

Chat with an LLM while deciding exactly which turns it sees: pin what
matters, remove what is wrong (the model is told to forget it), edit a
turn and trim or branch from it, attach reference documents, and keep a
continuously refreshed summary of each conversation.

Quick start: live-context config set-key && live-context chat"""

_POLICIES: dict[str, ChangePolicy] = {
    "nothing": ChangePolicy.do_nothing,
    "trim": ChangePolicy.trim,
    "branch": ChangePolicy.branch,
}


# ── Infrastructure helpers ──────────────────────────────────────────


def _config_to_dict(cfg: Config) -> dict:
    """Convert CLI Config into the canonical config dict for LiveContext."""
    if cfg.uses_sqlite:
        storage_config = {"path": cfg.sqlite_path}
    else:
        storage_config = {"base_path": str(cfg.data_path)}

    return {
        "storage": {"provider": cfg.storage_provider, "config": storage_config},
        "llm": {"provider": "openai", "api_key": cfg.openai_api_key or ""},
    }


def _build_ctx(cfg: Config, **kwargs: Any) -> LiveContext:
    cfg.ensure_dirs()
    return LiveContext.from_config(
        _config_to_dict(cfg), model=cfg.model or None, **kwargs
    )


@asynccontextmanager
async def _session(cfg: Config, **kwargs: Any) -> AsyncIterator[LiveContext]:
    """Open a LiveContext, let background work settle, then save and close."""
    ctx = _build_ctx(cfg, **kwargs)
    try:
        yield ctx
        await ctx.wait_idle(flush=True)
    finally:
        await ctx.aclose()


def _require_api_key(cfg: Config) -> None:
    if cfg.openai_api_key:
        return
    out.error(
        "OpenAI API key not configured. "
        "Run 'live-context config set-key' or set OPENAI_API_KEY."
    )
    sys.exit(1)


def _resolve(ids: Iterable[str], prefix: str, kind: str) -> str:
    """Expand an id prefix to the one full id it matches, or exit."""
    matches = [i for i in ids if i.startswith(prefix)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        out.error(f"No {kind} matches '{prefix}'")
    else:
        out.error(f"'{prefix}' matches {len(matches)} {kind}s; use more characters")
    sys.exit(1)


def _resolve_conversation(ctx: LiveContext, prefix: str | None) -> Conversation:
    if prefix is None:
        return ctx.store.active_conversation
    cid = _resolve((c.id for c in ctx.store.conversations), prefix, "conversation")
    return ctx.require_conversation(cid)


def _resolve_unit(conv: Conversation, prefix: str) -> str:
    return _resolve((u.id for u in conv.units), prefix, "unit")


class _StreamPrinter:
    """Writes streamed reply text to stdout as it is flushed."""

    def __init__(self) -> None:
        self._shown = 0

    def start(self) -> None:
        self._shown = 0
        sys.stdout.write(f"\n{out.green('assistant')} ")
        sys.stdout.flush()

    def update(self, conversation_id: str, text: str) -> None:
        sys.stdout.write(text[self._shown :])
        sys.stdout.flush()
        self._shown = len(text)

    def finish(self, committed: str | None) -> None:
        if self._shown == 0 and committed:
            sys.stdout.write(committed)
        sys.stdout.write("\n\n")
        sys.stdout.flush()


# ── chat ────────────────────────────────────────────────────────────


async def cmd_chat(args: argparse.Namespace) -> None:
    """Send one message, or start an interactive chat when none is given."""
    cfg = load_config()
    _require_api_key(cfg)
    printer = _StreamPrinter()

    async with _session(cfg, on_reply_update=printer.update) as ctx:
        interactive = args.message is None
        if interactive:
            print()
            out.banner()
            out.info(
                f"Conversation: {out.bold(ctx.store.active_conversation.title)}. "
                "Type 'quit' to exit.\n"
            )

        while True:
            if interactive:
                try:
                    message = input(out.cyan("you> ")).strip()
                except (EOFError, KeyboardInterrupt):
                    print()
                    break
                if not message:
                    continue
                if message.lower() in ("quit", "exit", "q"):
                    break
            else:
                message = args.message

            printer.start()
            unit_id = await ctx.send(message)
            conv = ctx.store.active_conversation
            unit = conv.find_unit(unit_id) if unit_id else None
            printer.finish(unit.content if unit else None)

            if not interactive:
                break


# ── conversations ───────────────────────────────────────────────────


async def cmd_conversations_list(args: argparse.Namespace) -> None:
    async with _session(load_config()) as ctx:
        out.header("Conversations")
        print()
        for row in ctx.list_conversations():
            marker = out.green("●") if row.is_active else " "
            branch = out.dim(" (branch)") if row.parent_conversation_id else ""
            print(
                f"  {marker} {out.dim(out.short_id(row.id))}  {row.title}{branch}  "
                + out.dim(f"{row.visible_count}/{row.unit_count} units, "
                          f"{row.total_tokens} tokens")
            )
        print()


async def cmd_conversations_new(args: argparse.Namespace) -> None:
    async with _session(load_config()) as ctx:
        cid = ctx.create_conversation(args.title, system_prompt=args.system)
        conv = ctx.require_conversation(cid)
        out.success(f"Created {conv.title} ({out.short_id(cid)}) and switched to it")
        if conv.units:
            out.info(out.dim("Pinned the system prompt"))


async def cmd_conversations_show(args: argparse.Namespace) -> None:
    async with _session(load_config()) as ctx:
        conv = _resolve_conversation(ctx, args.id)
        ctx.recompute_token_totals(conv.id)

        out.header(conv.title)
        print()
        out.kv("Id", conv.id)
        out.kv("Created", conv.created_at.isoformat(timespec="seconds"))
        if conv.parent_conversation_id:
            out.kv("Branched from", out.short_id(conv.parent_conversation_id))
        if conv.attachment_ids:
            names = [
                meta.name
                for aid in conv.attachment_ids
                if (meta := ctx.attachments.get(aid)) is not None
            ]
            out.kv("Attachments", ", ".join(names))

        usage = ctx.context_usage(conv.id)
        out.kv("Model", ctx.settings.model)
        out.kv(
            "Context",
            f"{out.gauge(usage.used / usage.capacity if usage.capacity else 0)} "
            f"{usage.used}/{usage.capacity} tokens",
        )
        print()
        for unit in conv.units:
            print(out.unit_line(unit, full=args.full))
        if not conv.units:
            out.info(out.dim("(empty)"))
        print()


async def cmd_conversations_switch(args: argparse.Namespace) -> None:
    async with _session(load_config()) as ctx:
        conv = _resolve_conversation(ctx, args.id)
        ctx.store.set_active_conversation(conv.id)
        out.success(f"Switched to {conv.title}")


async def cmd_conversations_rename(args: argparse.Namespace) -> None:
    async with _session(load_config()) as ctx:
        conv = _resolve_conversation(ctx, args.id)
        ctx.store.rename_conversation(conv.id, args.title)
        out.success(f"Renamed to {conv.title}")


async def cmd_conversations_delete(args: argparse.Namespace) -> None:
    async with _session(load_config()) as ctx:
        conv = _resolve_conversation(ctx, args.id)
        ctx.store.delete_conversation(conv.id)
        out.success(f"Deleted {conv.title}")
        out.info(f"Active: {ctx.store.active_conversation.title}")


async def cmd_conversations_branch(args: argparse.Namespace) -> None:
    async with _session(load_config()) as ctx:
        conv = ctx.store.active_conversation
        uid = _resolve_unit(conv, args.unit)
        cid = ctx.store.branch_from(conv.id, uid, args.title)
        if cid is None:
            out.error("Could not branch")
            return
        branch = ctx.require_conversation(cid)
        out.success(f"Branched into {branch.title} ({len(branch.units)} units)")


# ── units ───────────────────────────────────────────────────────────


async def cmd_units_add(args: argparse.Namespace) -> None:
    async with _session(load_config()) as ctx:
        uid = ctx.add_unit(args.type, args.content, pinned=args.pin)
        state = " and pinned" if args.pin else ""
        out.success(f"Added {args.type} {out.short_id(uid)}{state}")


async def cmd_units_pin(args: argparse.Namespace) -> None:
    async with _session(load_config()) as ctx:
        conv = ctx.store.active_conversation
        uid = _resolve_unit(conv, args.unit)
        if not ctx.store.toggle_pin(uid):
            out.warn("Removed units cannot be pinned; restore it first.")
            return
        unit = ctx.store.active_conversation.find_unit(uid)
        out.success("Pinned" if unit and unit.pinned else "Unpinned")


async def cmd_units_remove(args: argparse.Namespace) -> None:
    async with _session(load_config()) as ctx:
        conv = ctx.store.active_conversation
        uid = _resolve_unit(conv, args.unit)
        ctx.store.open_removal(conv.id, uid)
        target = ctx.store.apply_pending(_POLICIES[args.policy], args.title)
        if target is None:
            out.error("Nothing was removed")
            return
        out.success("Removed; the model will be told to forget it")
        if target != conv.id:
            out.info(f"Continuing in {ctx.require_conversation(target).title}")


async def cmd_units_restore(args: argparse.Namespace) -> None:
    async with _session(load_config()) as ctx:
        conv = ctx.store.active_conversation
        if args.all:
            ctx.store.restore_all(conv.id)
            out.success("Restored every removed unit")
            return
        if args.unit is None:
            out.error("Give a unit id or --all")
            return
        uid = _resolve_unit(conv, args.unit)
        unit = conv.find_unit(uid)
        if unit is None or not unit.removed:
            out.warn("That unit is not removed")
            return
        ctx.store.toggle_removed(uid)
        out.success("Restored")


async def cmd_units_edit(args: argparse.Namespace) -> None:
    cfg = load_config()
    printer = _StreamPrinter()
    async with _session(cfg, on_reply_update=printer.update) as ctx:
        conv = ctx.store.active_conversation
        uid = _resolve_unit(conv, args.unit)
        ctx.store.open_edit(conv.id, uid, args.content)
        policy = _POLICIES[args.policy]
        target = ctx.store.apply_pending(policy, args.title)
        if target is None:
            out.error("Nothing was edited")
            return
        out.success("Edited")
        if policy == ChangePolicy.do_nothing:
            return
        if target != conv.id:
            out.info(f"Continuing in {ctx.require_conversation(target).title}")
        if not cfg.openai_api_key:
            out.warn("No API key configured; the regenerated reply will be an error.")
        printer.start()
        await ctx.wait_idle()
        units = ctx.require_conversation(target).units
        replies = [u for u in units if u.type == UnitType.assistant]
        printer.finish(replies[-1].content if replies else None)


# ── attachments ─────────────────────────────────────────────────────


async def cmd_attach_add(args: argparse.Namespace) -> None:
    async with _session(load_config()) as ctx:
        result = await ctx.upload_files(
            args.files, select=args.select, embed=not args.no_embed
        )
        for meta in result.attachments:
            chunks = ctx.attachments.chunks(meta.id)
            out.success(f"{meta.name} ({len(chunks)} chunks)")
        if result.skipped:
            out.warn(f"Skipped {result.skipped} file(s) that could not be read")
        if result.embedded_chunks:
            out.info(out.dim(f"Embedded {result.embedded_chunks} chunks"))


async def cmd_attach_list(args: argparse.Namespace) -> None:
    async with _session(load_config()) as ctx:
        selected = set(ctx.store.active_conversation.attachment_ids)
        out.header("Attachments")
        print()
        if not ctx.attachments.attachments:
            out.info(out.dim("(none)"))
        for meta in ctx.attachments.attachments:
            mark = out.green("[x]") if meta.id in selected else "[ ]"
            tokens = ctx.attachments.token_total([meta.id])
            print(
                f"  {mark} {out.dim(out.short_id(meta.id))}  {meta.name}  "
                + out.dim(f"{len(ctx.attachments.chunks(meta.id))} chunks, {tokens} tokens")
            )
        print()


async def cmd_attach_select(args: argparse.Namespace) -> None:
    async with _session(load_config()) as ctx:
        aid = _resolve((m.id for m in ctx.attachments.attachments), args.id, "attachment")
        conv = ctx.store.active_conversation
        ctx.store.set_attachment_selection(conv.id, [*conv.attachment_ids, aid])
        out.success(f"Selected {ctx.attachments.get(aid).name}")


async def cmd_attach_unselect(args: argparse.Namespace) -> None:
    async with _session(load_config()) as ctx:
        conv = ctx.store.active_conversation
        aid = _resolve(conv.attachment_ids, args.id, "selected attachment")
        ctx.store.set_attachment_selection(
            conv.id, [a for a in conv.attachment_ids if a != aid]
        )
        out.success("Unselected")


async def cmd_attach_delete(args: argparse.Namespace) -> None:
    async with _session(load_config()) as ctx:
        aid = _resolve((m.id for m in ctx.attachments.attachments), args.id, "attachment")
        name = ctx.attachments.get(aid).name
        ctx.delete_attachment(aid)
        out.success(f"Deleted {name}")


# ── snapshots ───────────────────────────────────────────────────────


async def cmd_snapshot_create(args: argparse.Namespace) -> None:
    async with _session(load_config()) as ctx:
        conv = ctx.store.active_conversation
        sid = ctx.store.create_snapshot(conv.id, args.title)
        snapshot = conv.find_snapshot(sid) if sid else None
        if snapshot is not None:
            out.success(f"Saved {snapshot.title} ({len(snapshot.units)} units)")


async def cmd_snapshot_list(args: argparse.Namespace) -> None:
    async with _session(load_config()) as ctx:
        conv = ctx.store.active_conversation
        out.header(f"Snapshots of {conv.title}")
        print()
        snapshots = ctx.store.list_snapshots(conv.id)
        if not snapshots:
            out.info(out.dim("(none)"))
        for s in snapshots:
            print(
                f"  {out.dim(out.short_id(s.id))}  {s.title}  "
                + out.dim(f"{s.created_at.isoformat(timespec='seconds')}, {len(s.units)} units")
            )
        print()


async def cmd_snapshot_restore(args: argparse.Namespace) -> None:
    async with _session(load_config()) as ctx:
        conv = ctx.store.active_conversation
        sid = _resolve((s.id for s in conv.snapshots), args.id, "snapshot")
        ctx.store.restore_snapshot(conv.id, sid)
        out.success(f"Restored {conv.find_snapshot(sid).title}")


async def cmd_snapshot_branch(args: argparse.Namespace) -> None:
    async with _session(load_config()) as ctx:
        conv = ctx.store.active_conversation
        sid = _resolve((s.id for s in conv.snapshots), args.id, "snapshot")
        cid = ctx.store.branch_from_snapshot(conv.id, sid, args.title)
        if cid is not None:
            out.success(f"Branched into {ctx.require_conversation(cid).title}")


# ── summary ─────────────────────────────────────────────────────────


async def cmd_summary(args: argparse.Namespace) -> None:
    cfg = load_config()
    async with _session(cfg) as ctx:
        conv = ctx.store.active_conversation
        if args.refresh:
            _require_api_key(cfg)
            outcome = await ctx.refresh_summary(conv.id, force=True)
            out.info(out.dim(f"Refresh: {outcome}"))

        view = ctx.summary(conv.id)
        out.header(f"Summary of {conv.title}")
        print()
        if view.content:
            print(view.content)
        else:
            out.info(out.dim("(no summary yet)"))
        print()
        if view.updated_at:
            out.kv("Updated", view.updated_at.isoformat(timespec="seconds"))
        if view.error:
            out.warn(view.error)
        if view.stale:
            out.info(out.dim("Out of date; run with --refresh to regenerate."))


# ── config ──────────────────────────────────────────────────────────


async def cmd_config_show(args: argparse.Namespace) -> None:
    cfg = load_config()

    out.header(f"Configuration ({config_path_display()})")
    print()

    if cfg.openai_api_key:
        masked = cfg.openai_api_key[:7] + "..." + cfg.openai_api_key[-4:]
        out.kv("OpenAI API key", masked)
    else:
        out.kv("OpenAI API key", out.dim("not set"))

    out.kv("Model override", cfg.model or out.dim("none"))
    if cfg.uses_sqlite:
        out.kv("Storage", f"sqlite ({cfg.sqlite_path})")
    else:
        out.kv("Storage", f"disk ({cfg.data_path})")

    print()
    out.info("To change settings:")
    out.next_step("live-context config set-key", "change OpenAI API key")
    print()


async def cmd_config_set_key(args: argparse.Namespace) -> None:
    cfg = load_config() if config_exists() else Config()

    out.info("Get an API key at https://platform.openai.com/api-keys")
    print()

    if cfg.openai_api_key:
        masked = cfg.openai_api_key[:7] + "..." + cfg.openai_api_key[-4:]
        out.kv("Current key", masked)

    key = input("  New OpenAI API key: ").strip()
    if not key:
        out.warn("No key entered; keeping current value.")
        return

    cfg.openai_api_key = key
    path = save_config(cfg)
    out.success(f"API key saved to {path}")


async def cmd_config_path(args: argparse.Namespace) -> None:
    print(config_path_display())


# ── Parser ──────────────────────────────────────────────────────────


def _add_policy(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--policy",
        choices=list(_POLICIES),
        default="nothing",
        help="What happens to later turns: keep them, trim them, or branch",
    )
    parser.add_argument("--title", default=None, help="Title for a new branch")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="live-context",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Chat:\n"
            '  live-context chat "hello"                  Send one message\n'
            "  live-context chat                          Interactive chat\n"
            "\n"
            "Curate context:\n"
            '  live-context units add system "Be brief" --pin\n'
            "                                             Set a system prompt\n"
            "  live-context conversations show            List units with ids\n"
            "  live-context units pin ID                  Always include a unit\n"
            "  live-context units remove ID               Tell the model to forget it\n"
            '  live-context units edit ID "text" --policy trim\n'
            "                                             Edit and regenerate\n"
            "  live-context attach add notes.md --select  Attach a document\n"
            "  live-context snapshot create               Save a restore point\n"
            "  live-context summary --refresh             Regenerate the summary\n"
        ),
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed logs (scheduling, summaries, storage)",
    )
    sub = parser.add_subparsers(dest="command", title="commands")

    p_chat = sub.add_parser("chat", help="Chat in the active conversation")
    p_chat.add_argument("message", nargs="?", default=None)

    # conversations
    p_conv = sub.add_parser("conversations", help="Manage conversations")
    conv_sub = p_conv.add_subparsers(dest="conversations_command", title="commands")
    conv_sub.add_parser("list", help="List conversations")
    p = conv_sub.add_parser("new", help="Create a conversation and switch to it")
    p.add_argument("title", nargs="?", default=None)
    p.add_argument("--system", default=None, help="Seed with a pinned system prompt")
    p = conv_sub.add_parser("show", help="Show a conversation's units")
    p.add_argument("id", nargs="?", default=None)
    p.add_argument("--full", action="store_true", help="Do not truncate content")
    p = conv_sub.add_parser("switch", help="Make a conversation active")
    p.add_argument("id")
    p = conv_sub.add_parser("rename", help="Rename a conversation")
    p.add_argument("id")
    p.add_argument("title")
    p = conv_sub.add_parser("delete", help="Delete a conversation")
    p.add_argument("id")
    p = conv_sub.add_parser("branch", help="Branch the active conversation at a unit")
    p.add_argument("unit")
    p.add_argument("--title", default=None)

    # units
    p_units = sub.add_parser("units", help="Add, pin, remove, restore or edit units")
    units_sub = p_units.add_subparsers(dest="units_command", title="commands")
    p = units_sub.add_parser("add", help="Add a system prompt or note")
    p.add_argument("type", choices=[UnitType.system.value, UnitType.note.value])
    p.add_argument("content")
    p.add_argument("--pin", action="store_true", help="Pin it so it is always kept")
    p = units_sub.add_parser("pin", help="Toggle a unit's pin")
    p.add_argument("unit")
    p = units_sub.add_parser("remove", help="Remove a unit from the context")
    p.add_argument("unit")
    _add_policy(p)
    p = units_sub.add_parser("restore", help="Restore removed units")
    p.add_argument("unit", nargs="?", default=None)
    p.add_argument("--all", action="store_true")
    p = units_sub.add_parser("edit", help="Edit a unit's content")
    p.add_argument("unit")
    p.add_argument("content")
    _add_policy(p)

    # attachments
    p_att = sub.add_parser("attach", help="Manage attached documents")
    att_sub = p_att.add_subparsers(dest="attach_command", title="commands")
    p = att_sub.add_parser("add", help="Upload .txt, .md or .pdf files")
    p.add_argument("files", nargs="+")
    p.add_argument("--select", action="store_true", help="Select for this conversation")
    p.add_argument("--no-embed", action="store_true", help="Skip embedding generation")
    att_sub.add_parser("list", help="List attachments")
    p = att_sub.add_parser("select", help="Include an attachment in this conversation")
    p.add_argument("id")
    p = att_sub.add_parser("unselect", help="Stop including an attachment")
    p.add_argument("id")
    p = att_sub.add_parser("delete", help="Delete an attachment everywhere")
    p.add_argument("id")

    # snapshots
    p_snap = sub.add_parser("snapshot", help="Restore points for the active conversation")
    snap_sub = p_snap.add_subparsers(dest="snapshot_command", title="commands")
    p = snap_sub.add_parser("create", help="Save the current units")
    p.add_argument("--title", default=None)
    snap_sub.add_parser("list", help="List snapshots, newest first")
    p = snap_sub.add_parser("restore", help="Replace the units with a snapshot")
    p.add_argument("id")
    p = snap_sub.add_parser("branch", help="Start a new conversation from a snapshot")
    p.add_argument("id")
    p.add_argument("--title", default=None)

    # summary
    p_sum = sub.add_parser("summary", help="Show the conversation summary")
    p_sum.add_argument("--refresh", action="store_true", help="Regenerate it now")

    # config
    p_cfg = sub.add_parser("config", help="View and change settings")
    cfg_sub = p_cfg.add_subparsers(dest="config_command", title="config commands")
    cfg_sub.add_parser("show", help="Show current settings")
    cfg_sub.add_parser("set-key", help="Change OpenAI API key")
    cfg_sub.add_parser("path", help="Print config file location")

    return parser


# ── Dispatch ────────────────────────────────────────────────────────

_CommandHandler = Callable[[argparse.Namespace], Coroutine[Any, Any, None]]

_COMMAND_MAP: dict[str, _CommandHandler] = {
    "chat": cmd_chat,
    "summary": cmd_summary,
}

_GROUP_MAPS: dict[str, tuple[str, dict[str, _CommandHandler]]] = {
    "conversations": (
        "conversations_command",
        {
            "list": cmd_conversations_list,
            "new": cmd_conversations_new,
            "show": cmd_conversations_show,
            "switch": cmd_conversations_switch,
            "rename": cmd_conversations_rename,
            "delete": cmd_conversations_delete,
            "branch": cmd_conversations_branch,
        },
    ),
    "units": (
        "units_command",
        {
            "add": cmd_units_add,
            "pin": cmd_units_pin,
            "remove": cmd_units_remove,
            "restore": cmd_units_restore,
            "edit": cmd_units_edit,
        },
    ),
    "attach": (
        "attach_command",
        {
            "add": cmd_attach_add,
            "list": cmd_attach_list,
            "select": cmd_attach_select,
            "unselect": cmd_attach_unselect,
            "delete": cmd_attach_delete,
        },
    ),
    "snapshot": (
        "snapshot_command",
        {
            "create": cmd_snapshot_create,
            "list": cmd_snapshot_list,
            "restore": cmd_snapshot_restore,
            "branch": cmd_snapshot_branch,
        },
    ),
    "config": (
        "config_command",
        {
            "show": cmd_config_show,
            "set-key": cmd_config_set_key,
            "path": cmd_config_path,
        },
    ),
}


def main() -> None:
    import logging

    parser = _build_parser()
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="  %(name)s: %(message)s",
        )
    logging.getLogger("LiteLLM").setLevel(logging.CRITICAL)
    logging.getLogger("litellm").setLevel(logging.CRITICAL)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    if not args.command:
        parser.print_help()
        return

    if args.command in _GROUP_MAPS:
        dest, commands = _GROUP_MAPS[args.command]
        subcommand = getattr(args, dest)
        if not subcommand:
            parser.parse_args([args.command, "--help"])
            return
        handler = commands.get(subcommand)
    else:
        handler = _COMMAND_MAP.get(args.command)

    if handler is None:
        parser.print_help()
        return

    try:
        asyncio.run(handler(args))
    except KeyboardInterrupt:
        print()


if __name__ == "__main__":
    main()
