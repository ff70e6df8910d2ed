class MessageConstants:
    # Generic
    REQUEST_FAILED = "Request failed"
    INVALID_REQUEST_PARAMETERS = "Invalid request parameters"
    INTERNAL_SERVER_ERROR = "Internal server error"
    RATE_LIMIT_EXCEEDED = "Rate limit exceeded. Please try again later."

    # Auth
    INVALID_TOKEN = "Invalid token"
    AUTHENTICATION_REQUIRED = "Authentication required"
    INVALID_AUTH_SCHEME = "Invalid authentication scheme"
    USER_NOT_FOUND = "User not found"

    # Dashboard access
    NO_OWNED_WORKSPACES = "User lacks access to any owned workspaces"
    WORKSPACE_NOT_FOUND = "Workspace not found"
    WORKSPACE_ACCESS_DENIED = "You do not have access to this workspace"
    PROJECT_NOT_FOUND = "Project not found"
    PROJECT_ACCESS_DENIED = "You do not have access to this project"
    PROFILE_NOT_FOUND = "User profile not found"
    PROFILE_ACCESS_DENIED = "You do not have access to this user's dashboard"
    DEPARTMENT_NOT_FOUND = "Department not found"
    DEPARTMENT_ACCESS_DENIED = "You do not have access to this department"

    # Dashboard parameters
    INVALID_DATE_RANGE = "Invalid date range provided"
    CUSTOM_RANGE_REQUIRES_DATES = "Both startDate and endDate are required for a custom range"
    DATE_RANGE_TOO_LONG = "Date range is too long"
    ROLE_REQUIRES_DEPARTMENT = "The role filter requires a department filter"
    DEPARTMENT_ID_REQUIRED = "departmentId is required"
    INVALID_CURSOR = "Invalid cursor"

    # Dashboard success
    DASHBOARD_STATS_RETRIEVED = "Dashboard statistics retrieved successfully"
    TASK_TRENDS_RETRIEVED = "Task trends retrieved successfully"
    TEAM_PERFORMANCE_RETRIEVED = "Team performance retrieved successfully"
    ONTIME_COMPLETION_RETRIEVED = "On-time vs late completion retrieved successfully"
    ONTIME_START_RETRIEVED = "On-time vs late start retrieved successfully"
    PRIORITY_BREAKDOWN_RETRIEVED = "Priority breakdown retrieved successfully"
    OVERDUE_TREND_RETRIEVED = "Overdue tasks trend retrieved successfully"
    STATUS_OVERVIEW_RETRIEVED = "Task status overview retrieved successfully"
    TASK_STATISTICS_RETRIEVED = "Task statistics retrieved successfully"
    PROJECT_COMPLETION_RETRIEVED = "Project completion retrieved successfully"
    RECENT_TASKS_RETRIEVED = "Recent tasks retrieved successfully"
    PROJECTS_SEARCH_RETRIEVED = "Projects retrieved successfully"
    TAGS_SEARCH_RETRIEVED = "Tags retrieved successfully"
    DEPARTMENTS_SEARCH_RETRIEVED = "Departments retrieved successfully"
    DEPARTMENT_ROLES_SEARCH_RETRIEVED = "Department roles retrieved successfully"
