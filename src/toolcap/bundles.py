"""
Pre-built matcher groups for common toolchains.

Each bundle is a factory returning an OrMatcher; combine or extend them with
Matcher.or_():

    extended = Matcher.or_([compilation(), Matcher.command("zig").with_subcommand("build")])

Bundles can also be referenced by name from YAML rulesets (``bundle: safe_npm``)
through the BUNDLES registry.
"""

from collections.abc import Callable

from toolcap.policy.matcher import Matcher, OrMatcher
from toolcap.policy.rule import Rule
from toolcap.policy.ruleset import Ruleset

READ_ONLY_GIT_SUBCOMMANDS = (
    "status",
    "diff",
    "show",
    "log",
    "shortlog",
    "blame",
    "annotate",
    "branch",
    "tag",
    "remote",
    "stash",
    "describe",
    "rev-parse",
    "ls-files",
    "ls-tree",
    "cat-file",
    "config",
    "for-each-ref",
    "show-ref",
    "worktree",
)

SAFE_NPM_SUBCOMMANDS = (
    "list",
    "ls",
    "view",
    "search",
    "outdated",
    "explain",
    "fund",
    "audit",
    "doctor",
    "config",
    "help",
    "version",
    "run",
    "test",
    "start",
    "build",
)


def read_only_git() -> OrMatcher:
    """
    Git commands that only inspect repository state.

    Listing subcommands such as branch, tag, remote and stash are matched
    by subcommand alone, so "git branch -D x" also matches. Pair this bundle
    with explicit deny rules placed before it when that matters.
    """
    return Matcher.or_(
        Matcher.command("git").with_subcommand(sub) for sub in READ_ONLY_GIT_SUBCOMMANDS
    )


def compilation() -> OrMatcher:
    """Compilers, build tools, type checkers and linters."""
    return Matcher.or_([
        # Rust
        Matcher.command("cargo").with_subcommands(
            ["build", "check", "test", "clippy", "doc", "fmt", "bench"]
        ),
        Matcher.command("rustc"),
        Matcher.command("rustfmt"),
        # Go
        Matcher.command("go").with_subcommands(["build", "test", "vet", "fmt"]),
        Matcher.command("gofmt"),
        # TypeScript / JavaScript
        Matcher.command("tsc"),
        Matcher.command("node"),
        Matcher.command("npx").with_subcommand("tsc"),
        Matcher.command("esbuild"),
        Matcher.command("swc"),
        # Python
        Matcher.command("python").with_flag("-m"),
        Matcher.command("python3").with_flag("-m"),
        Matcher.command("mypy"),
        Matcher.command("ruff").with_subcommand("check"),
        Matcher.command("black").with_flag("--check"),
        Matcher.command("pylint"),
        Matcher.command("flake8"),
        # Java
        Matcher.command("javac"),
        Matcher.command("gradle").with_subcommands(["build", "test", "check"]),
        Matcher.command("mvn").with_subcommands(["compile", "test", "verify"]),
        # C / C++
        Matcher.command("make"),
        Matcher.command("cmake"),
        Matcher.command("gcc"),
        Matcher.command("g++"),
        Matcher.command("clang"),
        Matcher.command("clang++"),
        Matcher.command("cc"),
        Matcher.command("c++"),
        # Other build systems
        Matcher.command("ninja"),
        Matcher.command("bazel").with_subcommands(["build", "test"]),
        Matcher.command("buck").with_subcommands(["build", "test"]),
        Matcher.command("buck2").with_subcommands(["build", "test"]),
    ])


def safe_npm() -> OrMatcher:
    """
    npm commands that do not install or publish packages.

    Note that run, test, start and build execute scripts from package.json.
    """
    return Matcher.or_([Matcher.command("npm").with_subcommands(SAFE_NPM_SUBCOMMANDS)])


BUNDLES: dict[str, Callable[[], Matcher]] = {
    "read_only_git": read_only_git,
    "compilation": compilation,
    "safe_npm": safe_npm,
}


def get_bundle(name: str) -> Matcher:
    """
    Look up a bundle by name.

    Raises:
        KeyError: If no bundle has that name
    """
    try:
        factory = BUNDLES[name]
    except KeyError:
        raise KeyError(
            f"Unknown bundle: {name!r} (available: {', '.join(sorted(BUNDLES))})"
        ) from None
    return factory()


def default_ruleset() -> Ruleset:
    """
    A demonstration ruleset for interactive use.

    Allows read-only and build tooling, denies destructive git commands,
    privilege changes, recursive deletion and network tools. Everything else
    is UNKNOWN.
    """
    return Ruleset([
        Rule.allow(
            Matcher.command("git").with_subcommands([
                "status", "log", "diff", "show", "blame", "branch", "tag", "remote",
                "describe", "rev-parse", "ls-files", "ls-tree", "cat-file",
                "shortlog", "annotate",
            ]),
            name="read-only-git",
        ),
        Rule.allow(
            Matcher.command("cargo").with_subcommands(
                ["build", "check", "test", "clippy", "fmt", "doc", "tree", "metadata"]
            ),
            name="safe-cargo",
        ),
        Rule.allow(
            Matcher.command("npm").with_subcommands(
                ["list", "view", "search", "audit", "outdated", "ls"]
            ),
            name="safe-npm",
        ),
        Rule.allow(
            Matcher.or_(
                Matcher.command(name)
                for name in (
                    "ls", "cat", "head", "tail", "grep", "rg", "find",
                    "wc", "pwd", "which", "echo", "printf",
                )
            ),
            name="read-only-tools",
        ),
        Rule.allow(
            Matcher.command("go").with_subcommands(["build", "test", "vet", "fmt", "mod"]),
            name="safe-go",
        ),
        Rule.allow(Matcher.command("make"), name="make"),
        Rule.allow(
            Matcher.or_([Matcher.command("tsc"), Matcher.command("node"), Matcher.command("npx")]),
            name="javascript",
        ),
        Rule.deny(
            Matcher.command("git").with_subcommands(["push", "reset", "rebase", "force-push"]),
            name="destructive-git",
        ),
        Rule.deny(
            Matcher.or_([
                Matcher.command("sudo"),
                Matcher.command("su"),
                Matcher.command("chmod"),
                Matcher.command("chown"),
                Matcher.command("rm").with_flag("-rf"),
                Matcher.command("rm").with_flag("-r"),
                Matcher.command("mkfs"),
                Matcher.command("dd"),
            ]),
            name="dangerous-system",
        ),
        Rule.deny(
            Matcher.or_(Matcher.command(name) for name in ("curl", "wget", "nc", "netcat")),
            name="network",
        ),
    ])
