from utils.ast_utils import (ASTNode
                             , EXPR_TAGS
                             , CONSTANTS
                             , FUNCTIONS
                             , number
                             , is_node
                             , is_variable_name
                             , contains_variable
                             , collect_variables
                             , tree_depth
                             , check_depth)
from utils.print_utils import ast_to_string, format_number, format_value, _pformat
from utils.log_utils import log_execution_time, configure_logging
