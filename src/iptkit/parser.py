"""
iptables rule grammar parser.

Converts between free-form rule text, flag token lists and structured
Rule/Chain objects, and parses ``iptables --list-rules`` output.

Copyright (c) 2025 DNS Science.io, an After Dark Systems, LLC company.
All rights reserved.
"""

import logging
from typing import Sequence, Union

from netaddr import INET_PTON, AddrFormatError, IPAddress

from iptkit.models import Chain, Negatable, Rule

logger = logging.getLogger(__name__)

# A rule may be given as raw text, an argument list or a structured Rule
RuleSpec = Union[str, Sequence[str], Rule]

# Long option -> short option
ALIASES = {
    "--protocol": "-p",
    "--source": "-s",
    "--src": "-s",
    "--destination": "-d",
    "--dst": "-d",
    "--match": "-m",
    "--jump": "-j",
    "--goto": "-g",
    "--in-interface": "-i",
    "--out-interface": "-o",
    "--fragment": "-f",
    "--set-counters": "-c",
}

# Flags parsed into Rule fields
FIELD_FLAGS = {
    "-p": "protocol",
    "-s": "source",
    "-d": "destination",
    "-j": "jump",
    "-i": "in_interface",
    "-o": "out_interface",
}

# Serialization order of structured fields
FLAG_ORDER = (
    ("protocol", "-p"),
    ("source", "-s"),
    ("destination", "-d"),
    ("match", "-m"),
    ("jump", "-j"),
    ("goto", "-g"),
    ("in_interface", "-i"),
    ("out_interface", "-o"),
    ("fragment", "-f"),
    ("set_counters", "-c"),
)

ADDRESS_FLAGS = ("-s", "-d")

# Flags not followed by exactly one value
SWITCH_FLAGS = ("-f", "-c")


def tokenize(text: str) -> list[str]:
    """Split rule text on runs of whitespace."""
    return text.split()


def normalize_aliases(tokens: Sequence[str]) -> list[str]:
    """Rewrite long-form flags to their short form.

    Unknown tokens are passed through unchanged.
    """
    return [ALIASES.get(token, token) for token in tokens]


def parse_rule(rule: str | Sequence[str]) -> Rule:
    """Create a Rule by extracting the known parts of a rule definition.

    A ``!`` negates the next recognized flag. ``-j`` never carries a
    negation. Everything else is kept only in ``Rule.raw``.

    Args:
        rule: Rule text or token list, without the ``-A <chain>`` prefix

    Returns:
        Parsed Rule
    """
    if isinstance(rule, str):
        tokens = normalize_aliases(tokenize(rule))
    else:
        tokens = normalize_aliases(rule)

    values: dict[str, object] = {}
    negated = False
    pending: str | None = None

    for token in tokens:
        if pending is None:
            if token == "!" and not negated:
                negated = True
            elif token in FIELD_FLAGS:
                pending = FIELD_FLAGS[token]
            else:
                negated = False
            continue

        if pending == "jump":
            values["jump"] = token
        else:
            values[pending] = Negatable(negated, token)
        negated = False
        pending = None

    if pending is not None:
        logger.debug(f"Flag for {pending} without a value in rule: {' '.join(tokens)}")

    return Rule(raw=" ".join(tokens), **values)


def parse_dump(content: str) -> list[Chain]:
    """Parse ``iptables --list-rules`` output.

    Args:
        content: Output of ``iptables -S``

    Returns:
        Chains in the order they first appear
    """
    chains: dict[str, Chain] = {}

    for line in content.splitlines():
        tokens = tokenize(line)
        if not tokens:
            continue

        if tokens[0] == "-P" and len(tokens) == 3:
            name, target = tokens[1], tokens[2]
            chain = chains.setdefault(name, Chain(name=name))
            chain.target = target

        elif tokens[0] == "-N" and len(tokens) == 2:
            name = tokens[1]
            chains.setdefault(name, Chain(name=name, target=None))

        elif tokens[0] == "-A" and len(tokens) >= 2:
            name = tokens[1]
            chain = chains.setdefault(name, Chain(name=name))
            chain.rules.append(parse_rule(tokens[2:]))

        else:
            logger.debug(f"Ignoring line: {line}")

    return list(chains.values())


def rule_to_args(rule: Rule) -> list[str]:
    """Build the flag tokens for the structured fields of a rule."""
    args: list[str] = []

    for attr, flag in FLAG_ORDER:
        value = getattr(rule, attr)
        if value is None:
            continue

        if isinstance(value, tuple):
            negated, value = value
            if negated:
                args.append("!")
        args.extend([flag, value])

    return args


def serialize_rule(rule: Rule) -> str:
    """Get the canonical text of a rule."""
    if rule.raw is not None:
        return rule.raw
    return " ".join(rule_to_args(rule))


def serialize_chain(chain: Chain) -> str:
    """Render a chain the way ``iptables -S <chain>`` does."""
    if chain.target is None:
        lines = [f"-N {chain.name}"]
    else:
        lines = [f"-P {chain.name} {chain.target}"]

    for rule in chain.rules:
        lines.append(f"-A {chain.name} {serialize_rule(rule)}".rstrip())

    return "\n".join(lines) + "\n"


def serialize_chains(chains: Sequence[Chain]) -> str:
    """Render all chains the way ``iptables -S`` does."""
    return "".join(serialize_chain(chain) for chain in chains)


def spec_to_args(spec: RuleSpec) -> list[str]:
    """Normalize any accepted rule representation to flag tokens.

    Args:
        spec: Rule text, argument list or Rule

    Returns:
        Alias-normalized token list
    """
    if isinstance(spec, Rule):
        if spec.raw is not None:
            return normalize_aliases(tokenize(spec.raw))
        return rule_to_args(spec)

    if isinstance(spec, str):
        return normalize_aliases(tokenize(spec))

    if isinstance(spec, (list, tuple)):
        return normalize_aliases([str(token) for token in spec])

    raise TypeError(f"Unsupported rule specification: {spec!r}")


def _is_bare_ipv4(value: str) -> bool:
    if "/" in value:
        return False
    try:
        IPAddress(value, 4, flags=INET_PTON)
    except (AddrFormatError, ValueError):
        return False
    return True


def apply_default_masks(tokens: Sequence[str]) -> list[str]:
    """Append a /32 mask to bare IPv4 source and destination addresses.

    iptables stores every address as a network, so ``-s 10.1.1.1`` is
    listed back as ``-s 10.1.1.1/32``.
    """
    masked = list(tokens)
    pos = 0

    while pos < len(masked):
        if masked[pos] in ADDRESS_FLAGS and pos + 1 < len(masked):
            if _is_bare_ipv4(masked[pos + 1]):
                masked[pos + 1] = f"{masked[pos + 1]}/32"
            pos += 2
        else:
            pos += 1

    return masked


def canonical_order(tokens: Sequence[str]) -> list[str]:
    """Reorder rule tokens the way iptables lists them.

    Each recognized flag, with its value, a leading ``!`` and the
    unrecognized options that follow it (``-m tcp --dport 22``,
    ``-j REJECT --reject-with tcp-reset``), moves as one group into
    ``FLAG_ORDER``. Groups of the same flag keep their relative order.
    ``-f`` and ``-c`` travel with the group before them. Tokens before
    the first recognized flag go last.
    """
    ranks = {
        flag: rank for rank, (_, flag) in enumerate(FLAG_ORDER) if flag not in SWITCH_FLAGS
    }
    tokens = list(tokens)
    leading: list[str] = []
    groups: list[tuple[int, list[str]]] = []
    pos = 0

    while pos < len(tokens):
        token = tokens[pos]
        start = pos + 1 if token == "!" and pos + 1 < len(tokens) else pos
        flag = tokens[start]

        if flag in ranks and start + 1 < len(tokens):
            end = start + 2
            groups.append((ranks[flag], tokens[pos:end]))
            pos = end
            continue

        if groups:
            groups[-1][1].append(token)
        else:
            leading.append(token)
        pos += 1

    ordered = [token for _, group in sorted(groups, key=lambda g: g[0]) for token in group]
    return ordered + leading
