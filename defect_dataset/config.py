"""
Configuration and constants for the defect dataset builder.
"""

import os
import re

# =============================================================================
# JIRA SETTINGS
# =============================================================================

JIRA_URL = os.environ.get('JIRA_URL', 'https://issues.apache.org/jira')
JIRA_PAGE_SIZE = 100
JIRA_TIMEOUT = 30

# Jira timestamps look like 2013-05-14T09:47:52.000+0000
JIRA_DATE_FORMAT = '%Y-%m-%dT%H:%M:%S.%f%z'

BUG_JQL = (
    "project = '{key}' AND issuetype = Bug AND status in (Resolved, Closed) "
    "AND resolution = Fixed ORDER BY created ASC"
)

# =============================================================================
# GIT SETTINGS
# =============================================================================

# Ticket keys referenced from commit messages, e.g. BOOKKEEPER-1234
TICKET_KEY_PATTERN = re.compile(r'([A-Z][A-Z0-9]+-\d+)')

# Tag naming conventions tried, in order, when locating a release commit
TAG_PATTERNS = ['{name}', 'v{name}', 'release-{name}', '{project}-{name}']

SOURCE_EXTENSION = os.environ.get('SOURCE_EXTENSION', '.java')

# =============================================================================
# DATASET SETTINGS
# =============================================================================

# Fraction of the release timeline analyzed; recent releases have incomplete bug data
RELEASE_CUTOFF_FRACTION = float(os.environ.get('RELEASE_CUTOFF_FRACTION', '0.5'))

DATASET_OUTPUT_DIR = os.environ.get('DATASET_OUTPUT_DIR', 'datasets')

# Literature value used when no ticket has a known introduction version
DEFAULT_PROPORTION = 1.5

# Feature columns with at least this share of zero/missing values are dropped
ZERO_RATIO_THRESHOLD = 0.95

# Methods at or below this complexity, parameter count and nesting are skipped
TRIVIAL_METHOD_LIMIT = 1

UNKNOWN_INDEX = -1

METHOD_KEY_SEPARATOR = '::'
METHOD_NAME_SEPARATOR = '/'

BUGGY_YES = 'yes'
BUGGY_NO = 'no'

# =============================================================================
# FEATURE COLUMNS
# =============================================================================

ID_COLS = ['Project', 'MethodName', 'Release']

FEATURE_COLS = [
    'CodeSmells', 'CyclomaticComplexity', 'ParameterCount', 'NestingDepth',
    'NR',           # number of revisions
    'NAuth',        # number of distinct authors
    'stmtAdded', 'stmtDeleted', 'maxChurn', 'avgChurn',
]

LABEL_COL = 'IsBuggy'

CSV_HEADERS = ID_COLS + FEATURE_COLS + [LABEL_COL]

# Emitted with two decimals; every other feature is written as an integer
DECIMAL_FEATURES = {'avgChurn'}
