"""Tests for idiom application."""

from wireforge.generator.profile import Idiom
from wireforge.steering.idioms import (
    LiteralRewrite,
    RegexRewrite,
    apply_idiom,
    apply_idioms,
    compile_rewrite,
    create_idiom_applier,
    evaluate_condition,
    idiom_stats,
    sort_by_priority,
    validate_idioms,
)

CONTEXT = {"language": "typescript", "protocolName": "Gopher", "artifact": "parser"}


def describe_compile_rewrite():
    def prefers_regular_expressions(expect):
        expect(isinstance(compile_rewrite(Idiom("a", r"\bvar\b", "let")), RegexRewrite)) == True

    def falls_back_to_literal_text(expect):
        rewrite = compile_rewrite(Idiom("a", "foo(", "bar("))
        expect(isinstance(rewrite, LiteralRewrite)) == True
        expect(rewrite.apply("foo(1) + foo(2)")) == "bar(1) + bar(2)"


def describe_apply_idiom():
    def expands_group_references(expect):
        result = apply_idiom("let x = 1;", Idiom("const", r"\blet (\w+) =", "const $1 ="))
        expect(result.code) == "const x = 1;"
        expect(result.applied) == True

    def expands_whole_match_and_dollar(expect):
        expect(apply_idiom("cost", Idiom("a", "cost", "$$$&")).code) == "$cost"

    def keeps_unknown_references(expect):
        expect(apply_idiom("ab", Idiom("a", "(a)", "$2$1")).code) == "$2ab"

    def reports_no_change(expect):
        result = apply_idiom("x", Idiom("a", "y", "z"))
        expect(result) == result.__class__("x", False)

    def skips_idioms_whose_condition_fails(expect):
        idiom = Idiom("a", "x", "y", condition="artifact==types")
        expect(apply_idiom("x", idiom, CONTEXT).applied) == False
        expect(apply_idiom("x", idiom).applied) == True


def describe_evaluate_condition():
    def compares_context_values(expect):
        expect(evaluate_condition("language==typescript", CONTEXT)) == True
        expect(evaluate_condition("language != go", CONTEXT)) == True
        expect(evaluate_condition("artifact==client", CONTEXT)) == False

    def checks_presence(expect):
        expect(evaluate_condition("has:protocolName", CONTEXT)) == True
        expect(evaluate_condition("has:transport", CONTEXT)) == False

    def applies_unrecognised_conditions(expect):
        expect(evaluate_condition("whenever", CONTEXT)) == True


def describe_apply_idioms():
    def runs_higher_priorities_first(expect):
        idioms = [
            Idiom("late", "let", "var", priority=1),
            Idiom("early", "const", "let", priority=9),
        ]
        application = apply_idioms("const x", idioms)
        expect(application.code) == "var x"
        expect(application.applied) == ["early", "late"]
        expect(application.applied_count) == 2

    def keeps_declaration_order_for_ties(expect):
        idioms = [Idiom("first", "a", "b"), Idiom("second", "b", "c")]
        expect(sort_by_priority(idioms)) == idioms
        expect(apply_idioms("a", idioms).code) == "c"

    def is_idempotent_for_stable_rewrites(expect):
        idioms = [Idiom("var", r"\bvar\b", "let"), Idiom("eq", "(?<![=!])==(?!=)", "===")]
        once = apply_idioms("var a = b == c", idioms).code
        expect(once) == "let a = b === c"
        expect(apply_idioms(once, idioms).code) == once

    def can_restrict_to_high_priorities(expect):
        idioms = [Idiom("low", "a", "b", priority=5), Idiom("high", "c", "d", priority=6)]
        expect(apply_idioms("ac", idioms, high_priority_only=True).code) == "ad"

    def turns_failing_idioms_into_warnings(expect):
        idioms = [Idiom("broken", "x", None, 9), Idiom("working", "a", "b", 1)]
        result = apply_idioms("xa", idioms)
        expect(result.code) == "xb"
        expect(result.applied) == ["working"]
        expect(len(result.warnings)) == 1
        expect(result.warnings[0].startswith('Failed to apply idiom "broken"')) == True

    def returns_code_unchanged_without_idioms(expect):
        application = apply_idioms("x", [])
        expect(application.code) == "x"
        expect(application.warnings) == []


def describe_helpers():
    def binds_an_applier(expect):
        applier = create_idiom_applier([Idiom("a", "x", "y", condition="artifact==parser")])
        expect(applier("x", CONTEXT)) == "y"
        expect(applier("x", {**CONTEXT, "artifact": "types"})) == "x"

    def lists_invalid_patterns(expect):
        errors = validate_idioms([Idiom("ok", "a+", "b"), Idiom("broken", "(", "b")])
        expect(len(errors)) == 1
        expect(errors[0].startswith('Invalid pattern in idiom "broken"')) == True

    def counts_idioms(expect):
        idioms = [Idiom("a", "a", "", priority=6, condition="has:x"), Idiom("b", "b", "")]
        expect(idiom_stats(idioms)) == {"total": 2, "high_priority": 1, "with_conditions": 1}
