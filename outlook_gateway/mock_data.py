"""
Fixture dataset for synthetic mode.

Entries are stored in a compact authoring shape (plain addresses, one
timestamp field, folder ids); synthetic.py reshapes them into the field
names the Graph API returns.
"""

PROFILE = {
    "id": "user-dev-sparrow",
    "displayName": "Dev Sparrow",
    "mail": "dev.sparrow@company.com",
    "userPrincipalName": "dev.sparrow@company.com",
    "jobTitle": "Email Integration Developer",
}

USERS = {
    "sarah.johnson@company.com": "Sarah Johnson",
    "michael.chen@company.com": "Michael Chen",
    "lisa.chen@company.com": "Lisa Chen",
    "david.kim@company.com": "David Kim",
    "robert.wilson@company.com": "Robert Wilson",
    "priya.sharma@company.com": "Priya Sharma",
    "raj.patel@company.com": "Raj Patel",
    "emily.carter@company.com": "Emily Carter",
    "sandra.liu@company.com": "Sandra Liu",
    "dev.sparrow@company.com": "Dev Sparrow",
    "alerts@monitoring.company.com": "Monitoring Alerts",
    "noreply@vendor-portal.com": "Vendor Portal",
}

FOLDERS = [
    {"id": "inbox", "displayName": "Inbox", "parentFolderId": None, "childFolderCount": 2},
    {"id": "sentitems", "displayName": "Sent Items", "parentFolderId": None, "childFolderCount": 0},
    {"id": "drafts", "displayName": "Drafts", "parentFolderId": None, "childFolderCount": 0},
    {"id": "deleteditems", "displayName": "Deleted Items", "parentFolderId": None, "childFolderCount": 0},
    {"id": "archive", "displayName": "Archive", "parentFolderId": None, "childFolderCount": 0},
    {"id": "projects", "displayName": "Projects", "parentFolderId": "inbox", "childFolderCount": 2},
    {"id": "portaeh", "displayName": "PORTAEH", "parentFolderId": "projects", "childFolderCount": 0},
    {"id": "ccacb", "displayName": "CCACB", "parentFolderId": "projects", "childFolderCount": 0},
    {"id": "alerts", "displayName": "System Alerts", "parentFolderId": "inbox", "childFolderCount": 0},
]

EMAILS = [
    {
        "id": "email-001",
        "from": "sarah.johnson@company.com",
        "to": ["michael.chen@company.com", "lisa.chen@company.com", "dev.sparrow@company.com"],
        "cc": [],
        "subject": "Strategic Initiative 2025 - Q4 Progress Review",
        "body": "Team, Phase 1 of the digital transformation roadmap is complete with 92% of "
                "milestones achieved. Please bring your Q1 priorities to the December review.",
        "timestamp": "2025-11-05T09:15:00Z",
        "folder": "inbox",
        "isRead": True,
        "importance": "high",
        "hasAttachments": True,
    },
    {
        "id": "email-002",
        "from": "michael.chen@company.com",
        "to": ["dev.sparrow@company.com", "emily.carter@company.com", "sandra.liu@company.com"],
        "cc": ["david.kim@company.com"],
        "subject": "Technology Architecture Review - Microservices Migration Status",
        "body": "65% of services are decomposed and deployed. Dev, the API gateway is above "
                "the SLA targets. Let's sync Thursday to review blockers.",
        "timestamp": "2025-11-05T11:30:00Z",
        "folder": "inbox",
        "isRead": False,
        "importance": "normal",
        "hasAttachments": True,
    },
    {
        "id": "email-003",
        "from": "robert.wilson@company.com",
        "to": ["dev.sparrow@company.com", "priya.sharma@company.com", "raj.patel@company.com"],
        "cc": ["lisa.chen@company.com"],
        "subject": "PORTAEH Sprint 14 Planning - Budget Approval Needed",
        "body": "The sprint plan needs budget sign-off before Friday. The ETL hardening work "
                "is the biggest line item.",
        "timestamp": "2025-11-06T08:45:00Z",
        "folder": "portaeh",
        "isRead": False,
        "importance": "high",
        "hasAttachments": False,
    },
    {
        "id": "email-004",
        "from": "lisa.chen@company.com",
        "to": ["dev.sparrow@company.com"],
        "cc": [],
        "subject": "Budget Review FY2026",
        "body": "Attached is the first draft of the FY2026 budget. Comments by end of week please.",
        "timestamp": "2025-11-06T14:20:00Z",
        "folder": "inbox",
        "isRead": False,
        "importance": "normal",
        "hasAttachments": True,
    },
    {
        "id": "email-005",
        "from": "alerts@monitoring.company.com",
        "to": ["dev.sparrow@company.com"],
        "cc": [],
        "subject": "[ALERT] API gateway latency above threshold",
        "body": "p95 latency for /orders exceeded 800ms for 10 minutes on prod-eu-1.",
        "timestamp": "2025-11-07T02:10:00Z",
        "folder": "alerts",
        "isRead": True,
        "importance": "high",
        "hasAttachments": False,
    },
    {
        "id": "email-006",
        "from": "priya.sharma@company.com",
        "to": ["dev.sparrow@company.com", "raj.patel@company.com"],
        "cc": [],
        "subject": "Data quality checks for the CCACB load",
        "body": "I added null-rate checks on the customer dimension. Two columns fail on "
                "yesterday's load, details inside.",
        "timestamp": "2025-11-07T10:05:00Z",
        "folder": "ccacb",
        "isRead": False,
        "importance": "normal",
        "hasAttachments": False,
    },
    {
        "id": "email-007",
        "from": "dev.sparrow@company.com",
        "to": ["michael.chen@company.com"],
        "cc": ["sandra.liu@company.com"],
        "subject": "Re: Technology Architecture Review - Microservices Migration Status",
        "body": "Thanks Michael. The remaining blocker is the token refresh race in the "
                "mail connector, fix is in review.",
        "timestamp": "2025-11-07T12:40:00Z",
        "folder": "sentitems",
        "isRead": True,
        "importance": "normal",
        "hasAttachments": False,
    },
    {
        "id": "email-008",
        "from": "noreply@vendor-portal.com",
        "to": ["dev.sparrow@company.com"],
        "cc": [],
        "subject": "Your invoice INV-20451 is ready",
        "body": "Invoice INV-20451 for October cloud usage is available in the vendor portal.",
        "timestamp": "2025-11-08T06:00:00Z",
        "folder": "inbox",
        "isRead": True,
        "importance": "low",
        "hasAttachments": True,
    },
    {
        "id": "email-009",
        "from": "david.kim@company.com",
        "to": ["dev.sparrow@company.com", "sarah.johnson@company.com"],
        "cc": [],
        "subject": "Budget variance for Q4 cloud spend",
        "body": "Cloud spend is 12% over the Q4 budget, mostly from the staging clusters.",
        "timestamp": "2025-11-08T09:30:00Z",
        "folder": "inbox",
        "isRead": False,
        "importance": "high",
        "hasAttachments": False,
    },
    {
        "id": "email-010",
        "from": "emily.carter@company.com",
        "to": ["dev.sparrow@company.com"],
        "cc": ["michael.chen@company.com"],
        "subject": "Service registry documentation",
        "body": "First version of the service registry patterns is on the wiki. Feedback welcome.",
        "timestamp": "2025-11-09T15:15:00Z",
        "folder": "inbox",
        "isRead": True,
        "importance": "normal",
        "hasAttachments": False,
    },
    {
        "id": "email-011",
        "from": "raj.patel@company.com",
        "to": ["robert.wilson@company.com", "dev.sparrow@company.com"],
        "cc": [],
        "subject": "PORTAEH deployment checklist",
        "body": "Checklist for the Sunday deployment window attached, please confirm your items.",
        "timestamp": "2025-11-10T07:50:00Z",
        "folder": "portaeh",
        "isRead": False,
        "importance": "normal",
        "hasAttachments": True,
    },
    {
        "id": "email-012",
        "from": "sandra.liu@company.com",
        "to": ["dev.sparrow@company.com", "michael.chen@company.com"],
        "cc": [],
        "subject": "Zero-trust rollout: service certificates",
        "body": "Certificates for the first ten services are issued. Rotation runs nightly.",
        "timestamp": "2025-11-10T13:25:00Z",
        "folder": "inbox",
        "isRead": False,
        "importance": "normal",
        "hasAttachments": False,
    },
]

EVENTS = [
    {
        "id": "event-001",
        "subject": "Leadership Year-End Review",
        "organizer": "sarah.johnson@company.com",
        "attendees": ["michael.chen@company.com", "lisa.chen@company.com", "david.kim@company.com"],
        "start": "2025-12-15T09:00:00",
        "end": "2025-12-15T11:00:00",
        "location": "Board Room",
        "body": "Year-end review and 2026 planning.",
        "responseStatus": "organizer",
    },
    {
        "id": "event-002",
        "subject": "Architecture Sync",
        "organizer": "michael.chen@company.com",
        "attendees": ["dev.sparrow@company.com", "emily.carter@company.com", "sandra.liu@company.com"],
        "start": "2025-11-13T14:00:00",
        "end": "2025-11-13T15:00:00",
        "location": "Teams",
        "body": "Weekly architecture blockers review.",
        "responseStatus": "accepted",
    },
    {
        "id": "event-003",
        "subject": "PORTAEH Sprint 14 Planning",
        "organizer": "robert.wilson@company.com",
        "attendees": ["dev.sparrow@company.com", "priya.sharma@company.com", "raj.patel@company.com"],
        "start": "2025-11-11T10:00:00",
        "end": "2025-11-11T11:30:00",
        "location": "Room 4.12",
        "body": "Sprint scope and budget.",
        "responseStatus": "notResponded",
    },
    {
        "id": "event-004",
        "subject": "PORTAEH Deployment Window",
        "organizer": "raj.patel@company.com",
        "attendees": ["dev.sparrow@company.com", "robert.wilson@company.com"],
        "start": "2025-11-16T06:00:00",
        "end": "2025-11-16T09:00:00",
        "location": "Teams",
        "body": "Production deployment.",
        "responseStatus": "tentativelyAccepted",
    },
    {
        "id": "event-005",
        "subject": "Data Quality Office Hours",
        "organizer": "priya.sharma@company.com",
        "attendees": ["dev.sparrow@company.com"],
        "start": "2025-11-12T16:00:00",
        "end": "2025-11-12T16:30:00",
        "location": "Teams",
        "body": "Open questions on the CCACB checks.",
        "responseStatus": "notResponded",
    },
]

RULES = [
    {
        "id": "rule-001",
        "displayName": "Monitoring alerts to System Alerts",
        "sequence": 1,
        "isEnabled": True,
        "conditions": {"fromAddresses": [{"emailAddress": {"address": "alerts@monitoring.company.com"}}]},
        "actions": {"moveToFolder": "alerts", "stopProcessingRules": True},
    },
    {
        "id": "rule-002",
        "displayName": "PORTAEH project mail",
        "sequence": 2,
        "isEnabled": True,
        "conditions": {"subjectContains": ["PORTAEH"]},
        "actions": {"moveToFolder": "portaeh"},
    },
]
