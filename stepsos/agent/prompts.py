SYSTEM_PROMPT = (
    "You explain backend step executions of a file upload pipeline "
    "(entry, validate, process). Be concise and technical."
)

ANALYZE_STEP = (
    "Explain what happened in step '{step_id}' of execution {execution_id}, "
    "including why it has its current status.\n\nStep data:\n{step_data}"
)

AUTO_RECOVERY = (
    "Step '{step_id}' of execution {execution_id} failed. Suggest one concrete "
    "fix to the submitted input.\n\nStep data:\n{step_data}"
)

IMPROVEMENTS = (
    "Suggest up to three short improvements for step '{step_id}', one per line, "
    "without numbering.\n\nStep data:\n{step_data}"
)

EXPLAIN_EXECUTION = (
    "Explain which steps of this execution ran, the data flow between them, "
    "and any failure.\n\nExecution:\n{execution}"
)

CHAT = "{message}\n\nContext:\n{context}"
