# segment_pipeline configurations
default_fallback_date = "2024-01-01"
default_export_prefix = "pqa_trials"
default_max_workers = 8
request_timeout = 30

# Settings the syncer refuses to start without
required_settings = [
    "BUCKET_NAME",
    "LIMIT",
    "PROJECT_KEY",
    "ENVIRONMENT_KEY",
    "SEGMENT_KEY",
    "API_KEY",
    "LD_BASE_URL",
    "SLACK_WEBHOOK",
]

## Export layout: <prefix>/<YYYY>/<MM>/<DD>/<HHMMSSxxxx>/manifest
manifest_suffix = "manifest"
time_token_width = 10
domain_column_index = 0

## Segment rule written back to LaunchDarkly
rule_path = "/rules/0"
clause_context_kind = "user"
clause_attribute = "emailDomain"
clause_op = "in"
patch_comment = "Automated email domain sync"
