from seminal.codeviews.CFG.CFG_driver import CFGDriver
from seminal.codeviews.CFG.LoopInfo import LoopInfo


NESTED_IR = """
define void @nested(i32 %n) {
entry:
  br label %outer

outer:
  %i = phi i32 [ 0, %entry ], [ %i.next, %outer.latch ]
  %c1 = icmp slt i32 %i, %n
  br i1 %c1, label %inner, label %exit

inner:
  %j = phi i32 [ 0, %outer ], [ %j.next, %inner ]
  %j.next = add i32 %j, 1
  %c2 = icmp slt i32 %j.next, %n
  br i1 %c2, label %inner, label %outer.latch

outer.latch:
  %i.next = add i32 %i, 1
  br label %outer

exit:
  ret void

dead:
  br label %dead
}
"""


def test_block_graph_edges(load_module):
    module = load_module("InputDependentLoopTest.ll")
    cfg = CFGDriver(module)
    graph = cfg.graph("FunctionA")

    assert set(graph.nodes) == {"entry", "for.cond", "for.body", "for.inc", "for.end"}
    assert graph.nodes["entry"]["entry"] is True
    assert graph.edges["entry", "for.cond"]["label"] == "next"
    assert graph.edges["for.cond", "for.body"]["label"] == "pos_next"
    assert graph.edges["for.cond", "for.end"]["label"] == "neg_next"
    assert graph.edges["for.inc", "for.cond"]["label"] == "next"
    assert cfg["main"].graph.number_of_edges() == 0


def test_switch_edges(parse_ir):
    module = parse_ir("""
define i32 @pick(i32 %x) {
entry:
  switch i32 %x, label %other [ i32 0, label %zero ]
zero:
  ret i32 1
other:
  ret i32 0
}
""")
    graph = CFGDriver(module).graph("pick")

    assert graph.edges["entry", "other"]["label"] == "switch_next"
    assert graph.edges["entry", "zero"]["label"] == "switch_next"


def test_single_counted_loop(load_module, loop_info):
    function = load_module("InputDependentLoopTest.ll").function("FunctionA")
    loops = loop_info(function)

    assert len(loops) == 1
    loop = loops.loops[0]
    assert loop.header_label == "for.cond"
    assert loop.header is function.block("for.cond")
    assert loop.blocks == {"for.cond", "for.body", "for.inc"}
    assert loop.latches == ["for.inc"]
    assert loop.depth == 1
    assert loops.top_level() == [loop]
    assert loops.loop_for("for.body") is loop
    assert loops.loop_for("entry") is None


def test_function_without_loops(load_module, loop_info):
    function = load_module("InputDependentLoopTest.ll").function("main")

    assert len(loop_info(function)) == 0


def test_loop_with_breaks(load_module, loop_info):
    function = load_module("test_example2.ll").function("main")
    loops = loop_info(function)

    assert [loop.header_label for loop in loops] == ["while.body"]
    assert loops.loops[0].blocks == {"while.body", "lor.lhs.false", "if.end8"}
    assert loops.loops[0].latches == ["if.end8"]


def test_nested_loops(parse_ir):
    module = parse_ir(NESTED_IR)
    function = module.function("nested")
    loops = LoopInfo(function, CFGDriver(module).graph("nested"))

    # the unreachable self loop in `dead` is not a loop of the function
    assert len(loops) == 2
    outer, inner = loops.loops
    assert outer.header_label == "outer"
    assert outer.blocks == {"outer", "inner", "outer.latch"}
    assert inner.header_label == "inner"
    assert inner.blocks == {"inner"}
    assert inner.parent is outer
    assert outer.children == [inner]
    assert inner.depth == 2
    assert loops.top_level() == [outer]
    assert loops.loop_for("inner") is inner
    assert loops.loop_for("outer.latch") is outer
