"""
tests/test_pipeline.py -- Request pipeline semantics.

Covers:
  - stages run in order and each sees the context the previous one produced
  - a Halt short-circuits later stages and the handler
  - leave() runs in reverse order, only for stages that entered
  - Reply rendering and success detection
"""

from __future__ import annotations

from taskmanager.core.pipeline import Continue, Halt, Pipeline, Reply, RequestContext, Stage


class Recorder(Stage):
    def __init__(self, name: str, log: list, halt: Reply | None = None) -> None:
        self.name = name
        self.log = log
        self.halt = halt

    def enter(self, ctx):
        self.log.append(f"enter:{self.name}")
        if self.halt is not None:
            return Halt(self.halt)
        return Continue(ctx.evolve(params={**ctx.params, self.name: "seen"}))

    def leave(self, ctx, reply):
        self.log.append(f"leave:{self.name}:{reply.status_code}")


def _ctx() -> RequestContext:
    return RequestContext(method="GET", path="/api/tasks")


def test_stages_run_in_order_and_leave_in_reverse():
    log: list = []
    seen = {}

    def handler(ctx):
        seen.update(ctx.params)
        log.append("handler")
        return Reply(200, body={"success": True, "message": "ok"})

    reply = Pipeline(Recorder("a", log), Recorder("b", log)).run(_ctx(), handler)

    assert reply.status_code == 200
    assert seen == {"a": "seen", "b": "seen"}
    assert log == ["enter:a", "enter:b", "handler", "leave:b:200", "leave:a:200"]


def test_halt_skips_rest_and_handler():
    log: list = []
    denied = Reply(403, body={"success": False, "message": "no"})

    def handler(ctx):
        raise AssertionError("handler must not run")

    pipeline = Pipeline(Recorder("a", log), Recorder("b", log, halt=denied), Recorder("c", log))
    reply = pipeline.run(_ctx(), handler)

    assert reply is denied
    assert log == ["enter:a", "enter:b", "leave:a:403"]


def test_then_builds_a_new_pipeline():
    base = Pipeline(Stage())
    extended = base.then(Stage(), Stage())
    assert len(base.stages) == 1
    assert len(extended.stages) == 3


def test_context_is_immutable():
    ctx = _ctx()
    changed = ctx.evolve(principal={"id": "u1", "role": "admin"})
    assert ctx.principal is None
    assert changed.principal_id == "u1"
    assert changed.is_admin


def test_reply_success_and_payload():
    ok = Reply(200, body={"success": True, "message": "Hola ñ", "data": {"n": 1}})
    assert ok.success
    assert ok.payload() == '{"success":true,"message":"Hola ñ","data":{"n":1}}'

    assert not Reply(200, body={"success": False, "message": "x"}).success
    assert not Reply(404, body={"success": True, "message": "x"}).success
    assert Reply(200, raw='{"success":true}').success

    rendered = Reply(201, raw='{"a":1}').render()
    assert rendered.status_code == 201
    assert rendered.body == b'{"a":1}'
    assert rendered.media_type == "application/json"
