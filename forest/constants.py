"""Invariants enforced by the ForestOnchain contract.

Client-side checks mirror these exactly; they are not configurable.
"""

MAX_ACTIVITY_TYPE_LENGTH = 32

# startGoal reverts unless the goal lasts longer than this
MIN_GOAL_DURATION_SECONDS = 60 * 60

# startFocusSession bounds, inclusive
MIN_SESSION_SECONDS = 20 * 60
MAX_SESSION_SECONDS = 60 * 60

SECONDS_PER_DAY = 24 * 60 * 60
WEI_PER_ETHER = 10**18

# Read functions
FN_GET_USER_ACTIVITY_TYPES = "getUserActivityTypes"
FN_GET_GOAL = "getGoal"
FN_GET_END_TIME = "getEndTime"
FN_GET_STAKED_AMOUNT = "getStakedAmount"
FN_GET_CURRENT_USER_SESSION = "getCurrentUserSession"
FN_GET_BREAK_NEEDED = "getBreakNeeded"
FN_COST_PER_TREE = "cost_per_tree"
FN_CONTRACT_OWNER = "CONTRACT_OWNER"

# Write functions
FN_START_GOAL = "startGoal"
FN_CLAIM_STAKE = "claimStake"
FN_START_FOCUS_SESSION = "startFocusSession"
FN_TAKE_BREAK = "takeBreak"
FN_CHANGE_COST_PER_TREE = "changeCostPerTree"
FN_WITHDRAW = "withdraw"

# Revert identifiers surfaced in error details
ERR_GOAL_ALREADY_EXISTS = "GoalAlreadyExists"
ERR_INCORRECT_STAKE_SENT = "IncorrectStakeSent"
ERR_GOAL_DURATION_TOO_SHORT = "GoalDurationShouldBeMoreThan60Minutes"

# Largest value a uint256 argument or msg.value can carry
MAX_UINT256 = 2**256 - 1

# Longest numeric form input accepted; uint256 has 78 decimal digits
MAX_NUMBER_INPUT_LENGTH = 96
