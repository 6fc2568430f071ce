"""
Contract ABIs used by the workflows and scripts.

ABIs are data: only the entries the code actually calls or watches are
kept, copied from the deployed contracts' compiler output.
"""


def _fn(name, inputs=(), outputs=(), mutability="view"):
    return {
        "type": "function",
        "name": name,
        "inputs": [dict(i) for i in inputs],
        "outputs": [dict(o) for o in outputs],
        "stateMutability": mutability,
    }


def _arg(name, type_, internal_type=None, **extra):
    arg = {"name": name, "type": type_, "internalType": internal_type or type_}
    arg.update(extra)
    return arg


# ── Liquidator ───────────────────────────────────────────────────────

LIQUIDATOR_ABI = [
    {
        "type": "event",
        "name": "LiquidatableStateChanged",
        "anonymous": False,
        "inputs": [
            _arg("user", "address", indexed=True),
            _arg("liquidatable", "bool", indexed=False),
        ],
    },
    {
        "type": "event",
        "name": "PositionLiquidated",
        "anonymous": False,
        "inputs": [
            _arg("user", "address", indexed=True),
            _arg("collateralAmount", "uint256", indexed=False),
        ],
    },
    _fn("isLiquidatable", [_arg("user", "address")], [_arg("", "bool")]),
    _fn("getVirtualPrice", outputs=[_arg("", "uint256")]),
    _fn(
        "positions",
        [_arg("", "address")],
        [
            _arg("owner", "address"),
            _arg("liquidatable", "bool"),
            _arg("collateralAmount", "uint256"),
            _arg("size", "int256"),
            _arg("entryValue", "uint256"),
        ],
    ),
    _fn(
        "setPosition",
        [
            _arg("user", "address"),
            _arg("_isLiquidatable", "bool"),
            _arg("collateralAmount", "uint256"),
        ],
        mutability="nonpayable",
    ),
    _fn("liquidateCollateral", [_arg("user", "address")], mutability="nonpayable"),
]

# ── Counter ──────────────────────────────────────────────────────────

COUNTER_ABI = [
    _fn("number", outputs=[_arg("", "uint256")]),
    _fn("increment", mutability="nonpayable"),
    _fn("setNumber", [_arg("newNumber", "uint256")], mutability="nonpayable"),
]

# ── Report receivers (IReceiver / CounterProxy) ──────────────────────

RECEIVER_ABI = [
    _fn(
        "onReport",
        [_arg("metadata", "bytes"), _arg("report", "bytes")],
        mutability="nonpayable",
    ),
]

COUNTER_PROXY_ABI = RECEIVER_ABI + [
    _fn("counter", outputs=[_arg("", "address", "contract Counter")]),
]

# ── Proof of reserve ─────────────────────────────────────────────────

BALANCE_READER_ABI = [
    _fn(
        "getNativeBalances",
        [_arg("addresses", "address[]")],
        [_arg("", "uint256[]")],
    ),
]

IERC20_ABI = [
    _fn("totalSupply", outputs=[_arg("", "uint256")]),
    _fn("balanceOf", [_arg("account", "address")], [_arg("", "uint256")]),
    _fn("decimals", outputs=[_arg("", "uint8")]),
    _fn(
        "allowance",
        [_arg("owner", "address"), _arg("spender", "address")],
        [_arg("", "uint256")],
    ),
    _fn(
        "approve",
        [_arg("spender", "address"), _arg("amount", "uint256")],
        [_arg("", "bool")],
        mutability="nonpayable",
    ),
]

RESERVE_MANAGER_ABI = [
    _fn(
        "updateReserves",
        [
            _arg(
                "updateReservesStruct",
                "tuple",
                "struct UpdateReserves",
                components=[
                    _arg("totalMinted", "uint256"),
                    _arg("totalReserve", "uint256"),
                ],
            )
        ],
        mutability="nonpayable",
    ),
    _fn("lastTotalMinted", outputs=[_arg("", "uint256")]),
    _fn("lastTotalReserve", outputs=[_arg("", "uint256")]),
]

# ── Message emitter ──────────────────────────────────────────────────

MESSAGE_EMITTER_ABI = [
    {
        "type": "event",
        "name": "MessageEmitted",
        "anonymous": False,
        "inputs": [
            _arg("emitter", "address", indexed=True),
            _arg("timestamp", "uint256", indexed=True),
            _arg("message", "string", indexed=False),
        ],
    },
    _fn("getLastMessage", [_arg("emitter", "address")], [_arg("", "string")]),
    _fn(
        "getMessage",
        [_arg("emitter", "address"), _arg("timestamp", "uint256")],
        [_arg("", "string")],
    ),
    _fn("emitMessage", [_arg("message", "string")], mutability="nonpayable"),
]

# ── Aqua strategies ──────────────────────────────────────────────────

AQUA_APP_ABI = [
    _fn("AQUA", outputs=[_arg("", "address")]),
]

_AQUA_TRANSFER_ARGS = [
    _arg("maker", "address"),
    _arg("app", "address"),
    _arg("strategyHash", "bytes32"),
    _arg("token", "address"),
    _arg("amount", "uint256"),
]

AQUA_ABI = [
    _fn(
        "rawBalances",
        [
            _arg("maker", "address"),
            _arg("app", "address"),
            _arg("strategyHash", "bytes32"),
            _arg("token", "address"),
        ],
        [_arg("balance", "uint248"), _arg("tokensCount", "uint8")],
    ),
    _fn(
        "safeBalances",
        [
            _arg("maker", "address"),
            _arg("app", "address"),
            _arg("strategyHash", "bytes32"),
            _arg("token0", "address"),
            _arg("token1", "address"),
        ],
        [_arg("balance0", "uint256"), _arg("balance1", "uint256")],
    ),
    _fn(
        "ship",
        [
            _arg("app", "address"),
            _arg("strategy", "bytes"),
            _arg("tokens", "address[]"),
            _arg("amounts", "uint256[]"),
        ],
        [_arg("strategyHash", "bytes32")],
        mutability="nonpayable",
    ),
    _fn(
        "dock",
        [
            _arg("app", "address"),
            _arg("strategyHash", "bytes32"),
            _arg("tokens", "address[]"),
        ],
        mutability="nonpayable",
    ),
    _fn("pull", _AQUA_TRANSFER_ARGS, mutability="nonpayable"),
    _fn("push", _AQUA_TRANSFER_ARGS, mutability="nonpayable"),
]
