import unittest

from support import World, call, lit, make_context
from effinfer.checker import EffectChecker
from effinfer.domains import EffectSetDomain
from effinfer.relative import ParamLoc, RelEffect, ThisLoc
from effinfer.symbols import ClassSymbol, ClassType, function_literal_class
from effinfer.trees import Block, DefDef, Function, Ident, New, This

IO = frozenset({"io"})
STATE = frozenset({"state"})
PURE = frozenset()


class LatentTestCase(unittest.TestCase):
    def setUp(self):
        self.w = World()
        self.domain = self.w.domain()
        self.top = self.domain.lattice.top
        self.apply = self.w.function1.member("apply")

    def effect(self, tree, **kwargs):
        ctx, reporter = make_context(**kwargs)
        return self.domain.compute_effect(tree, ctx), reporter

    def literal(self, *annotations):
        """Function literal whose static type carries `annotations` on apply"""
        cls = function_literal_class(self.w.function1, annotations)
        return Function([], lit(), tpe=ClassType(cls))


class TestFunctionArguments(LatentTestCase):
    def setUp(self):
        super().setUp()
        self.f = self.w.param("f", self.w.function1)
        self.each = self.w.method("each", self.f, annotations=["rel(f)"])

    def test_effect_of_function_argument_is_charged(self):
        # each(x => println(x))
        eff, reporter = self.effect(call(self.each, self.literal("effect(io)")), expected=PURE)
        self.assertEqual(eff, PURE)
        [err] = reporter.errors
        self.assertIn("found   : io", err.message)

    def test_effect_of_function_argument(self):
        self.assertEqual(self.effect(call(self.each, self.literal("effect(io)")))[0], IO)
        self.assertEqual(self.effect(call(self.each, self.literal("effect(state | io)")))[0], IO | STATE)

    def test_pure_function_argument(self):
        eff, reporter = self.effect(call(self.each, self.literal("effect(pure)")), expected=PURE)
        self.assertEqual(eff, PURE)
        self.assertEqual(reporter.errors, [])

    def test_unannotated_function_argument_is_top(self):
        self.assertEqual(self.effect(call(self.each, self.literal()))[0], self.top)

    def test_explicit_member(self):
        g = self.w.param("g", self.w.function1)
        each_apply = self.w.method("eachApply", g, annotations=["rel(g.apply)"])
        self.assertEqual(self.effect(call(each_apply, self.literal("effect(state)")))[0], STATE)

    def test_argument_of_declared_type_uses_declared_member(self):
        h = ClassSymbol("Handler").val("h", ClassType(self.w.function1))
        self.assertEqual(self.effect(call(self.each, Ident(h)))[0], self.top)

    def test_concrete_effect_is_joined(self):
        g = self.w.param("g", self.w.function1)
        each_logged = self.w.method("eachLogged", g, annotations=["effect(state)", "rel(g)"])
        self.assertEqual(self.effect(call(each_logged, self.literal("effect(io)")))[0], IO | STATE)

    def test_forwarded_parameter_is_discharged(self):
        # def outer(g: A => B): Unit @rel(g) = each(g)
        g = self.w.param("g", self.w.function1)
        self.w.method("outer", g, annotations=["rel(g)"])
        tree = call(self.each, Ident(g))
        self.assertEqual(self.effect(tree, rel_env=[RelEffect(ParamLoc(g))])[0], PURE)
        self.assertEqual(self.effect(tree, rel_env=[RelEffect(ParamLoc(g), self.apply)])[0], PURE)
        self.assertEqual(self.effect(tree)[0], self.top)

    def test_discharged_by_enclosing_rel(self):
        tree = call(self.each, self.literal("effect(io)"))
        self.assertEqual(self.effect(tree, rel_env=[RelEffect(ParamLoc(self.f))])[0], PURE)


class TestOverriding(LatentTestCase):
    def setUp(self):
        super().setUp()
        self.runner = ClassSymbol("Runner")
        self.run = self.runner.method("run")
        self.quiet = ClassSymbol("QuietRunner", parents=[self.runner])
        self.quiet.method("run", annotations=["effect(pure)"])
        self.r = self.w.param("r", self.runner)
        self.exec = self.w.method("exec", self.r, annotations=["rel(r.run)"])

    def test_overriding_member_of_argument_type(self):
        eff, reporter = self.effect(call(self.exec, New(self.quiet)), expected=PURE)
        self.assertEqual(eff, PURE)
        self.assertEqual(reporter.errors, [])

    def test_declared_member_of_argument_type(self):
        self.assertEqual(self.effect(call(self.exec, New(self.runner)))[0], self.top)

    def test_inherited_member(self):
        plain = ClassSymbol("PlainRunner", parents=[self.quiet])
        self.assertEqual(self.effect(call(self.exec, New(plain)))[0], PURE)

    def test_this_forwarded_as_argument(self):
        # inside Runner: def go(): Unit @rel(this.run) = exec(this)
        tree = call(self.exec, This(self.runner))
        env = [RelEffect(ThisLoc(self.runner), self.run)]
        self.assertEqual(self.effect(tree, rel_env=env)[0], PURE)
        self.assertEqual(self.effect(tree)[0], self.top)


class TestThisRelative(LatentTestCase):
    def test_unbound_this_uses_the_member_effect(self):
        self.w.method("step", annotations=["effect(io)"])
        m = self.w.method("m", annotations=["rel(this.step)"])
        self.assertEqual(self.effect(call(m))[0], IO)

    def test_covered_this_is_discharged(self):
        step = self.w.method("step", annotations=["effect(io)"])
        m = self.w.method("m", annotations=["rel(this.step)"])
        env = [RelEffect(ThisLoc(self.w.test), step)]
        self.assertEqual(self.effect(call(m), rel_env=env)[0], PURE)

    def test_self_reference_terminates(self):
        m = self.w.method("m", annotations=["rel(this.m)"])
        self.assertEqual(self.effect(call(m))[0], PURE)

    def test_mutual_reference_terminates(self):
        a = self.w.method("a", annotations=["rel(this.b)"])
        b = self.w.method("b", annotations=["effect(io)", "rel(this.a)"])
        self.assertEqual(self.effect(call(a))[0], IO)
        self.assertEqual(self.effect(call(b))[0], IO)


class TestUnderspecified(LatentTestCase):
    def test_rel_on_plain_value_parameter_is_top(self):
        o = self.w.param("o", self.w.int)
        use = self.w.method("use", o, annotations=["rel(o)"])
        self.assertEqual(self.effect(call(use, lit()))[0], self.top)

    def test_by_name_parameter_without_argument_is_top(self):
        x = self.w.param("x", by_name=True)
        run = self.w.method("run", x, annotations=["rel(x)"])
        self.assertEqual(self.effect(call(run))[0], self.top)

    def test_default_replaces_relative_effects(self):
        f = self.w.param("f", self.w.function1)
        foreach = self.w.method("foreach", f, annotations=["rel(f)"])
        domain = self.w.domain(defaults={foreach: ("state",)})
        ctx, _ = make_context()
        self.assertEqual(domain.compute_effect(call(foreach, self.literal("effect(io)")), ctx), STATE)


class CountingDomain(EffectSetDomain):
    """Records how often each tree is analyzed"""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.visits = {}

    def compute_effect(self, tree, ctx):
        self.visits[id(tree)] = self.visits.get(id(tree), 0) + 1
        return super().compute_effect(tree, ctx)


class TestByNameArguments(unittest.TestCase):
    def test_by_name_argument_is_analyzed_once(self):
        w = World()
        domain = CountingDomain(universe=("io", "state"), defaults={w.println: ("io",)})
        x = w.param("x", by_name=True)
        run = w.method("run", x, annotations=["rel(x)"])
        risky = call(w.println, lit("boom"))
        ctx, reporter = make_context()
        self.assertEqual(domain.compute_effect(call(run, risky), ctx), IO)
        self.assertEqual(domain.visits[id(risky)], 1)
        self.assertEqual(reporter.errors, [])


class TestRecursion(unittest.TestCase):
    def test_recursive_call_with_forwarded_parameter(self):
        # def loop(f: A => B): Unit @rel(f) = loop(f)
        w = World()
        f = w.param("f", w.function1)
        loop = w.method("loop", f, annotations=["rel(f)"])
        checker = EffectChecker(w.domain())
        [result] = checker.check_tree(DefDef(loop, call(loop, Ident(f))))
        self.assertTrue(result.ok)
        self.assertEqual(result.effect, PURE)

    def test_recursive_call_applying_the_parameter(self):
        # def loop(f: A => B): Unit @rel(f) = { f(1); loop(f) }
        w = World()
        f = w.param("f", w.function1)
        loop = w.method("loop", f, annotations=["rel(f)"])
        apply = w.function1.member("apply")
        body = Block([call(apply, lit(1), qual=Ident(f))], call(loop, Ident(f)))
        [result] = EffectChecker(w.domain()).check_tree(DefDef(loop, body))
        self.assertEqual(result.errors, [])


class TestMultipleParents(LatentTestCase):
    def setUp(self):
        super().setUp()
        a = ClassSymbol("A")
        a.method("run", annotations=["effect(io)"])
        self.b = ClassSymbol("B", parents=[a])
        self.b.method("run", annotations=["effect(pure)"])
        self.c = ClassSymbol("C", parents=[self.b])
        self.c.method("run", annotations=["effect(io)"])
        r = self.w.param("r", a)
        self.exec = self.w.method("exec", r, annotations=["rel(r.run)"])

    def test_override_of_the_most_specific_parent_is_charged(self):
        for parents in ([self.b, self.c], [self.c, self.b]):
            d = ClassSymbol("D", parents=parents)
            eff, reporter = self.effect(call(self.exec, New(d)), expected=PURE)
            self.assertEqual(eff, PURE)
            [err] = reporter.errors
            self.assertIn("found   : io", err.message)
            self.assertEqual(self.effect(call(self.exec, New(d)))[0], IO)
