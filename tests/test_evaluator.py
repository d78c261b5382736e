import math

import pytest

from calc_engine import (
    CalculationError,
    CalculatorEngine,
    EvaluationFailure,
    NonFiniteResult,
    PercentWithoutOperand,
    SafeEvaluator,
    Settings,
)


@pytest.fixture
def engine():
    return CalculatorEngine()


@pytest.mark.parametrize("expr,expected", [
    ("2*(3)", 6.0),
    ("1+2*3", 7.0),
    ("(1+2)*3", 9.0),
    ("10/4", 2.5),
    ("7%4", 3.0),
    ("-3+5", 2.0),
    ("2*-3", -6.0),
    ("--2", 2.0),
    ("+4", 4.0),
    ("8-2-1", 5.0),
    ("16/4/2", 2.0),
    (".5*4", 2.0),
    ("1e+21*10", 1e22),
    ("1.5e-7*2", 3e-7),
    ("((200)+((200)*((25)/100)))", 250.0),
])
def test_arithmetic(engine, expr, expected):
    assert engine.evaluate(expr) == expected


def test_constants(engine):
    assert engine.evaluate("2*pi") == 2 * math.pi
    assert engine.evaluate("e") == math.e


def test_functions_in_degrees(engine):
    assert engine.evaluate("cos(60)") == pytest.approx(0.5)
    assert engine.evaluate("tan(45)") == pytest.approx(1.0)
    assert engine.evaluate("sqrt(16)") == 4.0
    assert engine.evaluate("log(1000)") == pytest.approx(3.0)
    assert engine.evaluate("ln(e)") == pytest.approx(1.0)


def test_functions_in_radians():
    engine = CalculatorEngine(Settings(angle_mode="rad"))
    assert engine.evaluate("sin(pi/2)") == pytest.approx(1.0)


def test_negative_zero_is_normalised(engine):
    result = engine.evaluate("-0")
    assert result == 0.0
    assert math.copysign(1.0, result) == 1.0


@pytest.mark.parametrize("expr", [
    "",
    "   ",
    "1+",
    "(1+2",
    "()",
    "1.2.3",
    ".",
    "2 3",
    "2$3",
    "foo(2)",
    "pi(2)",
    "sin 30",
    "sqrt(-1)",
    "ln(0)",
    "log(-5)",
])
def test_evaluation_failures(engine, expr):
    with pytest.raises(EvaluationFailure):
        engine.evaluate(expr)


@pytest.mark.parametrize("expr", ["1/0", "-1/0", "0/0", "5%0"])
def test_non_finite_results(engine, expr):
    with pytest.raises(NonFiniteResult):
        engine.evaluate(expr)


def test_deep_nesting_is_a_failure_not_a_crash(engine):
    expr = "(" * 600 + "1" + ")" * 600
    with pytest.raises(EvaluationFailure):
        engine.evaluate(expr)


def test_too_long_expression(engine):
    with pytest.raises(EvaluationFailure):
        engine.evaluate("1+" * 1000 + "1")


def test_evaluator_uses_given_env():
    evaluator = SafeEvaluator({"two": 2.0, "double": lambda x: x * 2})
    assert evaluator.eval_expr("double(two)+1") == 5.0


def test_error_hierarchy():
    for exc in (PercentWithoutOperand, EvaluationFailure, NonFiniteResult):
        assert issubclass(exc, CalculationError)


def test_settings_validation():
    with pytest.raises(ValueError):
        CalculatorEngine(Settings(angle_mode="grad"))
    with pytest.raises(ValueError):
        Settings(max_digits=0).validate()
    with pytest.raises(ValueError):
        Settings(log_level="LOUD").validate()


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("CALC_ANGLE_MODE", "CALC_AUTO_PERCENT", "CALC_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_settings_from_env(clean_env):
    clean_env.setenv("CALC_ANGLE_MODE", "RAD")
    clean_env.setenv("CALC_AUTO_PERCENT", "off")
    clean_env.setenv("CALC_LOG_LEVEL", "debug")
    settings = Settings.from_env()
    assert settings.angle_mode == "rad"
    assert settings.auto_evaluate_percent is False
    assert settings.log_level == "DEBUG"


def test_settings_from_empty_env_uses_defaults(clean_env):
    assert Settings.from_env() == Settings()


def test_settings_from_env_rejects_bad_values(clean_env):
    clean_env.setenv("CALC_ANGLE_MODE", "gradians")
    with pytest.raises(ValueError):
        Settings.from_env()
