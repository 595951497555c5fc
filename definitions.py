"""Datasets every installation starts with.

The synchronizer upserts these on startup; see ``catalog.SchemaCatalog.sync_datasets``.
"""
from schema import DatasetDefinition, DatasetType, FieldDefinition as F, FieldType

PEOPLE = "people"
MEETINGS = "meetings"
PERSON_NOTES = "person_notes"
PERSON_RELATIONSHIPS = "person_relationships"
METRIC_CATEGORIES = "metric_categories"
METRICS = "metrics"
EXPERIMENTS = "experiments"
EXPERIMENT_METRICS = "experiment_metrics"
DAILY_LOGS = "daily_logs"
TODOS = "todos"
GRATITUDE_JOURNAL = "gratitude_journal"
FINANCIAL_LOGS = "financial_logs"
BODY_MEASUREMENTS = "body_measurements"


def relation(key, display_name, dataset, description="", on_delete=None, optional=False):
    """A relation field joined on the target's id.

    ``on_delete`` is ``"prevent"``, ``"cascade"`` or None.
    """
    return F(
        key=key,
        type=FieldType.TEXT,
        display_name=display_name,
        description=description,
        is_optional=optional,
        is_relation=True,
        related_dataset=dataset,
        related_field="id",
        prevent_delete_if_referenced=on_delete == "prevent",
        cascade_delete_if_referenced=on_delete == "cascade",
    )


def private_flag(what):
    return F("private", FieldType.BOOLEAN, "Private", description=f"Is this {what} private?")


PEOPLE_FIELDS = [
    F("name", FieldType.TEXT, "Name", description="Full name of the person", is_searchable=True),
    F("birthday", FieldType.DATE, "Birthday", is_searchable=True, is_optional=True),
    F("address", FieldType.TEXT, "Address", is_optional=True),
    F("employment_history", FieldType.MARKDOWN, "Employment History", is_optional=True),
    F("tags", FieldType.TEXT, "Tags", description="Comma-separated tags", is_optional=True),
    F("first_met_date", FieldType.DATE, "First Met Date", is_optional=True),
    private_flag("person"),
]

MEETING_FIELDS = [
    relation("person_id", "Person", PEOPLE, "Who did you meet with?", on_delete="cascade"),
    F("meeting_date", FieldType.DATE, "Meeting Date", is_searchable=True),
    F("location", FieldType.TEXT, "Location", is_optional=True),
    F("duration_minutes", FieldType.NUMBER, "Duration (Minutes)", unit="minutes", is_optional=True),
    F("description", FieldType.MARKDOWN, "Description", is_optional=True),
    F("follow_up_needed", FieldType.BOOLEAN, "Follow-up Needed"),
    F("follow_up_date", FieldType.DATE, "Follow-up Date", is_optional=True),
    private_flag("meeting"),
]

PERSON_NOTE_FIELDS = [
    relation("person_id", "Person", PEOPLE, "Who is this note about?", on_delete="cascade"),
    F("date", FieldType.DATE, "Date", is_searchable=True),
    F("content", FieldType.MARKDOWN, "Content", is_searchable=True),
    private_flag("note"),
]

PERSON_RELATIONSHIP_FIELDS = [
    relation("person_id", "Person", PEOPLE, "First person in relationship", on_delete="cascade"),
    relation("related_person_id", "Related Person", PEOPLE, "Second person in relationship", on_delete="cascade"),
    F("relationship_type", FieldType.TEXT, "Relationship Type", is_searchable=True),
    F("notes", FieldType.TEXT, "Notes", is_optional=True),
]

METRIC_CATEGORY_FIELDS = [
    F("name", FieldType.TEXT, "Name", is_searchable=True, is_unique=True),
]

METRIC_FIELDS = [
    F("name", FieldType.TEXT, "Name", is_searchable=True),
    F("description", FieldType.TEXT, "Description", is_optional=True),
    F("type", FieldType.SELECT_SINGLE, "Type", description="number, boolean, time or percentage"),
    F("unit", FieldType.TEXT, "Unit", is_optional=True),
    F("default_value", FieldType.TEXT, "Default Value", is_optional=True),
    relation("category_id", "Category", METRIC_CATEGORIES, "Category of this metric", on_delete="prevent"),
    F("active", FieldType.BOOLEAN, "Active"),
    F("schedule_frequency", FieldType.TEXT, "Schedule Frequency", is_optional=True),
    F("schedule_interval_value", FieldType.NUMBER, "Interval", is_optional=True),
    F("schedule_interval_unit", FieldType.SELECT_SINGLE, "Interval Unit", description="days, weeks or months", is_optional=True),
    F("schedule_last_occurrence", FieldType.DATE, "Last Occurrence", is_optional=True),
    private_flag("metric"),
]

EXPERIMENT_FIELDS = [
    F("name", FieldType.TEXT, "Name", is_searchable=True),
    F("description", FieldType.TEXT, "Description", is_optional=True),
    F("start_date", FieldType.DATE, "Start Date"),
    F("end_date", FieldType.DATE, "End Date", is_optional=True),
    F("goal", FieldType.TEXT, "Goal", is_optional=True),
    F("status", FieldType.TEXT, "Status"),
    F("starting_images", FieldType.FILE_LIST, "Starting Images", is_optional=True),
    private_flag("experiment"),
]

EXPERIMENT_METRIC_FIELDS = [
    relation("experiment_id", "Experiment", EXPERIMENTS, "The experiment this metric belongs to", on_delete="cascade"),
    relation("metric_id", "Metric", METRICS, "The metric to track in this experiment", on_delete="prevent"),
    F("target", FieldType.NUMBER, "Target", is_optional=True),
    F("target_type", FieldType.TEXT, "Target Type", is_optional=True),
    F("importance", FieldType.NUMBER, "Importance", is_optional=True),
]

DAILY_LOG_FIELDS = [
    F("date", FieldType.DATE, "Date", is_searchable=True),
    relation("metric_id", "Metric", METRICS, "The metric being tracked", on_delete="prevent"),
    relation("experiment_id", "Experiment", EXPERIMENTS, "The experiment this log belongs to", on_delete="cascade", optional=True),
    F("value", FieldType.TEXT, "Value"),
    F("notes", FieldType.TEXT, "Notes", is_optional=True),
]

TODO_FIELDS = [
    F("title", FieldType.TEXT, "Title", is_searchable=True),
    F("description", FieldType.TEXT, "Description", is_optional=True),
    F("deadline", FieldType.DATE, "Deadline", is_searchable=True),
    F("priority", FieldType.TEXT, "Priority", description="low, medium, high or urgent"),
    F("tags", FieldType.TEXT, "Tags", is_optional=True),
    relation("related_metric_id", "Related Metric", METRICS, "Metric linked to this todo", on_delete="prevent", optional=True),
    F("reminder_date", FieldType.DATE, "Reminder Date", is_optional=True),
    F("is_complete", FieldType.BOOLEAN, "Completed"),
    F("completed_at", FieldType.DATE, "Completed At", is_optional=True),
    F("status", FieldType.TEXT, "Status"),
    private_flag("todo"),
]

GRATITUDE_FIELDS = [
    F("date", FieldType.DATE, "Date", is_searchable=True),
    F("entry", FieldType.MARKDOWN, "Entry", is_searchable=True),
    private_flag("entry"),
]

FINANCIAL_LOG_FIELDS = [
    F("date", FieldType.DATE, "Date", is_searchable=True),
    F("amount", FieldType.NUMBER, "Amount", unit="$"),
    F("description", FieldType.TEXT, "Description", is_searchable=True),
    F("category", FieldType.TEXT, "Category", is_searchable=True),
    F("tags", FieldType.TEXT, "Tags", is_searchable=True, is_optional=True),
]

BODY_MEASUREMENT_FIELDS = [
    F("date", FieldType.DATE, "Date", is_searchable=True),
    F("time", FieldType.TEXT, "Time", is_optional=True),
    F("measurement", FieldType.TEXT, "Measurement", is_searchable=True),
    F("value", FieldType.NUMBER, "Value"),
    F("unit", FieldType.TEXT, "Unit", is_searchable=True),
    F("private", FieldType.BOOLEAN, "Private", is_optional=True),
]


DEFAULT_DATASETS = [
    DatasetDefinition(PEOPLE, "People", "Personal contacts and relationship management", DatasetType.PEOPLE_CRM, PEOPLE_FIELDS),
    DatasetDefinition(MEETINGS, "Meetings", "Meeting records with contacts and follow-ups", DatasetType.PEOPLE_CRM, MEETING_FIELDS),
    DatasetDefinition(PERSON_NOTES, "Person Notes", "Notes and observations about contacts", DatasetType.PEOPLE_CRM, PERSON_NOTE_FIELDS),
    DatasetDefinition(PERSON_RELATIONSHIPS, "Person Relationships", "Relationships between contacts", DatasetType.PEOPLE_CRM, PERSON_RELATIONSHIP_FIELDS),
    DatasetDefinition(METRIC_CATEGORIES, "Metric Categories", "Categories for organizing metrics", DatasetType.EXPERIMENT, METRIC_CATEGORY_FIELDS),
    DatasetDefinition(METRICS, "Metrics", "Daily tracking metrics for health, productivity, and habits", DatasetType.EXPERIMENT, METRIC_FIELDS),
    DatasetDefinition(EXPERIMENTS, "Experiments", "Personal experiments for tracking changes", DatasetType.EXPERIMENT, EXPERIMENT_FIELDS),
    DatasetDefinition(EXPERIMENT_METRICS, "Experiment Metrics", "Links between experiments and the metrics they track", DatasetType.EXPERIMENT, EXPERIMENT_METRIC_FIELDS),
    DatasetDefinition(DAILY_LOGS, "Daily Logs", "Daily metric entries", DatasetType.EXPERIMENT, DAILY_LOG_FIELDS),
    DatasetDefinition(TODOS, "Todos", "Tasks with deadlines and priorities", DatasetType.TODO, TODO_FIELDS),
    DatasetDefinition(GRATITUDE_JOURNAL, "Gratitude Journal", "Daily gratitude entries", DatasetType.JOURNALING, GRATITUDE_FIELDS),
    DatasetDefinition(FINANCIAL_LOGS, "Financial Logs", "Expense and income transactions", DatasetType.FINANCIAL, FINANCIAL_LOG_FIELDS),
    DatasetDefinition(BODY_MEASUREMENTS, "Body Measurements", "Body measurements over time", DatasetType.METRIC, BODY_MEASUREMENT_FIELDS),
]
