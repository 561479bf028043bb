"""Declarative definition of the profile registration wizard.

Adding, removing or reordering fields and steps only requires editing the
tables below; validators, defaults and enablement are derived from them.
"""

from typing import List, Optional

from formflow.models import (
    FieldDefinition,
    FormDefinition,
    PatternRule,
    RepeatableSectionDefinition,
    SelectOption,
    StepDefinition,
    UILabels,
    ValidationRule,
)


def _options(values: List[str]) -> List[SelectOption]:
    return [SelectOption(value=value, label=value) for value in values]


UI_LABELS = UILabels(
    form_title="Create Your Profile",
    back_button="Back",
    continue_button="Continue",
    submit_button="Submit Registration",
    submitting_button="Submitting...",
    success_title="Registration Complete!",
    success_message="Your profile has been created successfully.",
    id_label="User ID",
    register_new_button="Register New Profile",
    submit_error_fallback="An unexpected error occurred. Please try again.",
    review_step_title="Review & Submit",
    review_step_subtitle="Please review your information before submitting.",
)

GENDER_OPTIONS = [
    SelectOption(value="male", label="Male"),
    SelectOption(value="female", label="Female"),
    SelectOption(value="other", label="Other"),
    SelectOption(value="prefer-not-to-say", label="Prefer not to say"),
]

STATE_OPTIONS = _options(
    [
        "Alabama", "Alaska", "Arizona", "Arkansas", "California", "Colorado",
        "Connecticut", "Delaware", "Florida", "Georgia", "Hawaii", "Idaho",
        "Illinois", "Indiana", "Iowa", "Kansas", "Kentucky", "Louisiana",
        "Maine", "Maryland", "Massachusetts", "Michigan", "Minnesota",
        "Mississippi", "Missouri", "Montana", "Nebraska", "Nevada",
        "New Hampshire", "New Jersey", "New Mexico", "New York",
        "North Carolina", "North Dakota", "Ohio", "Oklahoma", "Oregon",
        "Pennsylvania", "Rhode Island", "South Carolina", "South Dakota",
        "Tennessee", "Texas", "Utah", "Vermont", "Virginia", "Washington",
        "West Virginia", "Wisconsin", "Wyoming",
    ]
)

COUNTRY_OPTIONS = _options(
    [
        "United States", "Canada", "United Kingdom", "Australia", "Germany",
        "France", "India", "Japan", "Brazil", "Mexico", "Spain", "Italy",
        "Netherlands", "Sweden", "Switzerland", "Singapore", "South Korea",
    ]
)

EXPERIENCE_OPTIONS = _options(
    ["0-1 years", "1-3 years", "3-5 years", "5-10 years", "10-15 years", "15+ years"]
)

INDUSTRY_OPTIONS = _options(
    [
        "Technology", "Healthcare", "Finance", "Education", "Manufacturing",
        "Retail", "Media & Entertainment", "Real Estate", "Consulting",
        "Government", "Non-Profit", "Agriculture", "Transportation",
        "Energy", "Telecommunications",
    ]
)

EMPLOYMENT_TYPE_OPTIONS = [
    SelectOption(value="full-time", label="Full-Time"),
    SelectOption(value="part-time", label="Part-Time"),
    SelectOption(value="contract", label="Contract"),
    SelectOption(value="freelance", label="Freelance"),
    SelectOption(value="internship", label="Internship"),
]


def _required_text(
    name: str,
    label: str,
    message: str,
    min_length: int = 2,
    kind: str = "short_text",
    min_length_message: Optional[str] = None,
    **extra,
) -> FieldDefinition:
    return FieldDefinition(
        name=name,
        label=label,
        kind=kind,
        required=True,
        validation=ValidationRule(required=True, min_length=min_length),
        error_messages={"required": message, "min_length": min_length_message or message},
        **extra,
    )


def _required_choice(
    name: str, label: str, message: str, options: List[SelectOption], kind: str = "single_select", **extra
) -> FieldDefinition:
    return FieldDefinition(
        name=name,
        label=label,
        kind=kind,
        required=True,
        validation=ValidationRule(required=True),
        error_messages={"required": message},
        options=options,
        **extra,
    )


def _required_date(name: str, label: str, message: str, **extra) -> FieldDefinition:
    return FieldDefinition(
        name=name,
        label=label,
        kind="date",
        required=True,
        validation=ValidationRule(required=True),
        error_messages={"required": message},
        **extra,
    )


PERSONAL_DETAILS = StepDefinition(
    id="personalDetails",
    label="Personal Details",
    title="Personal Details",
    subtitle="Tell us about yourself to get started.",
    icon="Person",
    fields=[
        FieldDefinition(name="profilePhoto", label="Profile Photo", kind="file", accept="image/*"),
        _required_text(
            "firstName", "First Name", "First name is required",
            min_length_message="First name must be at least 2 characters",
            placeholder="John", grid_cols=6,
        ),
        _required_text(
            "lastName", "Last Name", "Last name is required",
            min_length_message="Last name must be at least 2 characters",
            placeholder="Doe", grid_cols=6,
        ),
        _required_date("dateOfBirth", "Date of Birth", "Date of birth is required"),
        _required_choice(
            "gender", "Gender", "Please select a gender", GENDER_OPTIONS, kind="single_choice_set"
        ),
    ],
)

CONTACT_DETAILS = StepDefinition(
    id="contactDetails",
    label="Contact Details",
    title="Contact Details",
    subtitle="How can we reach you? All fields are required.",
    icon="ContactMail",
    fields=[
        FieldDefinition(
            name="email",
            label="Email Address",
            kind="email",
            placeholder="john@example.com",
            required=True,
            grid_cols=6,
            icon="Email",
            validation=ValidationRule(required=True, email=True),
            error_messages={
                "required": "Email is required",
                "email": "Please enter a valid email address",
            },
        ),
        FieldDefinition(
            name="phone",
            label="Phone Number",
            kind="phone",
            placeholder="+1 (555) 000-0000",
            required=True,
            grid_cols=6,
            icon="Phone",
            validation=ValidationRule(
                required=True, min_length=10, pattern=PatternRule(value=r"^[0-9+\-() ]+$")
            ),
            error_messages={
                "required": "Phone number is required",
                "min_length": "Phone number must be at least 10 digits",
                "pattern": "Please enter a valid phone number",
            },
        ),
        _required_text(
            "address", "Street Address", "Address is required", min_length=5,
            min_length_message="Address must be at least 5 characters",
            kind="long_text", placeholder="123 Main St, Apt 4B", rows=2, icon="LocationOn",
        ),
        _required_text("city", "City", "City is required", grid_cols=6),
        _required_choice("state", "State", "Please select a state", STATE_OPTIONS, grid_cols=6),
        FieldDefinition(
            name="zipCode",
            label="ZIP Code",
            required=True,
            grid_cols=6,
            validation=ValidationRule(required=True, min_length=5, pattern=PatternRule(value=r"^[0-9-]+$")),
            error_messages={
                "required": "ZIP code is required",
                "min_length": "ZIP code must be at least 5 characters",
                "pattern": "Please enter a valid ZIP code",
            },
        ),
        _required_choice("country", "Country", "Please select a country", COUNTRY_OPTIONS, grid_cols=6),
    ],
)

EXPERIENCE_SECTION = RepeatableSectionDefinition(
    name="experiences",
    label="Work Experience",
    add_button_label="Add Experience",
    item_label="Experience",
    icon="Work",
    min_items=1,
    min_items_error="Add at least one experience entry",
    default_item={
        "company": "",
        "jobTitle": "",
        "employmentType": "full-time",
        "startDate": "",
        "endDate": "",
        "currentlyWorking": False,
        "description": "",
    },
    fields=[
        _required_text("company", "Company", "Company name is required", grid_cols=6),
        _required_text("jobTitle", "Job Title", "Job title is required", grid_cols=6),
        _required_choice(
            "employmentType", "Employment Type", "Please select employment type", EMPLOYMENT_TYPE_OPTIONS
        ),
        _required_date("startDate", "Start Date", "Start date is required", grid_cols=6),
        FieldDefinition(name="endDate", label="End Date", kind="date", grid_cols=6, depends_on="currentlyWorking"),
        FieldDefinition(name="currentlyWorking", label="I currently work here", kind="boolean"),
        FieldDefinition(
            name="description",
            label="Description (optional)",
            kind="long_text",
            rows=2,
            placeholder="Describe your responsibilities and achievements...",
        ),
    ],
)

PROFESSIONAL_EXPERIENCE = StepDefinition(
    id="professionalExperience",
    label="Professional Experience",
    title="Professional Experience",
    subtitle="Share your work history and professional background.",
    icon="Work",
    fields=[
        _required_text("currentJobTitle", "Current Job Title", "Current job title is required", grid_cols=6),
        _required_choice(
            "yearsOfExperience", "Years of Experience", "Please select years of experience",
            EXPERIENCE_OPTIONS, grid_cols=6,
        ),
        _required_choice("industry", "Industry", "Please select an industry", INDUSTRY_OPTIONS, grid_cols=6),
        _required_text(
            "skills", "Skills (comma-separated)", "Please enter at least one skill",
            placeholder="React, TypeScript, Node.js...", grid_cols=6,
        ),
        FieldDefinition(name="resume", label="Upload Resume", kind="file", accept=".pdf,.doc,.docx"),
    ],
    section=EXPERIENCE_SECTION,
)

PROJECT_SECTION = RepeatableSectionDefinition(
    name="projects",
    label="Project Entries",
    add_button_label="Add Project",
    item_label="Project",
    icon="Folder",
    min_items=1,
    min_items_error="Add at least one project",
    default_item={
        "projectName": "",
        "role": "",
        "description": "",
        "technologies": "",
        "projectUrl": "",
        "startDate": "",
        "endDate": "",
        "ongoing": False,
    },
    fields=[
        _required_text("projectName", "Project Name", "Project name is required", grid_cols=6),
        _required_text("role", "Your Role", "Your role is required", grid_cols=6),
        _required_text(
            "description", "Description", "Description is required", min_length=10,
            min_length_message="Description must be at least 10 characters",
            kind="long_text", rows=3,
            placeholder="Describe the project, your contributions, and outcomes...",
        ),
        _required_text(
            "technologies", "Technologies", "Please list technologies used",
            placeholder="React, Node.js, PostgreSQL...", grid_cols=6,
        ),
        FieldDefinition(
            name="projectUrl",
            label="Project URL (optional)",
            placeholder="https://...",
            grid_cols=6,
            validation=ValidationRule(url=True),
            error_messages={"url": "Please enter a valid URL"},
        ),
        _required_date("startDate", "Start Date", "Start date is required", grid_cols=6),
        FieldDefinition(name="endDate", label="End Date", kind="date", grid_cols=6, depends_on="ongoing"),
        FieldDefinition(name="ongoing", label="This project is ongoing", kind="boolean"),
    ],
)

PROJECTS = StepDefinition(
    id="projects",
    label="Projects",
    title="Projects",
    subtitle="Showcase your best work and side projects.",
    icon="Folder",
    fields=[
        FieldDefinition(
            name="portfolioUrl",
            label="Portfolio URL (optional)",
            placeholder="https://yourportfolio.com",
            validation=ValidationRule(url=True),
            error_messages={"url": "Please enter a valid URL"},
        ),
        FieldDefinition(name="openToCollaboration", label="I'm open to collaboration on projects", kind="boolean"),
    ],
    section=PROJECT_SECTION,
)

REGISTRATION_FORM = FormDefinition(
    title=UI_LABELS.form_title,
    steps=[PERSONAL_DETAILS, CONTACT_DETAILS, PROFESSIONAL_EXPERIENCE, PROJECTS],
    labels=UI_LABELS,
)
