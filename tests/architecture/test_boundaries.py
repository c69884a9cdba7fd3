from pytest_archon import archrule


def test_core_independence() -> None:
    """
    Core must not import from the challenge engine.
    It is the foundation and must remain independent.
    """
    (
        archrule("core_is_independent")
        .match("myaccounts_core*")
        .should_not_import("myaccounts_challenge*")
        .check("myaccounts_core")
    )


def test_primitives_isolation() -> None:
    """
    Primitives are the lowest level.
    They must not import from domain or ports.
    """
    (
        archrule("primitives_isolation")
        .match("myaccounts_core.primitives*")
        .should_not_import("myaccounts_core.domain*")
        .should_not_import("myaccounts_core.ports*")
        .check("myaccounts_core")
    )


def test_ports_layering() -> None:
    """
    Ports (interfaces) should not depend on Adapters (implementations).
    """
    (
        archrule("ports_layering")
        .match("myaccounts_challenge.ports*")
        .should_not_import("myaccounts_challenge.adapters*")
        .check("myaccounts_challenge", only_direct_imports=True)
    )


def test_state_machine_independent_of_adapters() -> None:
    """
    The session, step-up and recovery logic must work against ports only.
    Adapters are plugins and only the engine facade picks a default.
    """
    (
        archrule("logic_adapters_isolation")
        .match("myaccounts_challenge.session*")
        .match("myaccounts_challenge.stepup*")
        .match("myaccounts_challenge.recovery*")
        .match("myaccounts_challenge.device*")
        .should_not_import("myaccounts_challenge.adapters*")
        .should_not_import("myaccounts_challenge.engine*")
        .check("myaccounts_challenge", only_direct_imports=True)
    )


def test_building_blocks_isolation() -> None:
    """
    Channels, cooldown, lockout and code entry are leaf modules.
    They must not reach up into the session or the engine.
    """
    (
        archrule("building_blocks_isolation")
        .match("myaccounts_challenge.channels*")
        .match("myaccounts_challenge.cooldown*")
        .match("myaccounts_challenge.lockout*")
        .match("myaccounts_challenge.code_entry*")
        .should_not_import("myaccounts_challenge.session*")
        .should_not_import("myaccounts_challenge.engine*")
        .should_not_import("myaccounts_challenge.adapters*")
        .check("myaccounts_challenge", only_direct_imports=True)
    )


def test_observability_is_leaf() -> None:
    """
    Metrics and tracing must not depend on challenge logic.
    """
    (
        archrule("observability_is_leaf")
        .match("myaccounts_challenge.observability*")
        .should_not_import("myaccounts_challenge.session*")
        .should_not_import("myaccounts_challenge.engine*")
        .should_not_import("myaccounts_challenge.adapters*")
        .check("myaccounts_challenge", only_direct_imports=True)
    )
