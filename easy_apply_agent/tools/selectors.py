"""Static selector strategies for the Easy Apply UI family.

All DOM knowledge about the job board lives here so that a markup change
means editing one table. Each strategy lists its expressions from most to
least specific; text fallbacks cover builds where the attributes move.
"""

from easy_apply_agent.tools.selector_engine import SelectorStrategy

# --- Application modal ---

MODAL = SelectorStrategy(
    name="modal",
    selectors=(
        '.jobs-easy-apply-modal',
        'div[data-test-modal][role="dialog"]',
        '.artdeco-modal[role="dialog"]',
        '.jobs-easy-apply-content',
        'div[aria-labelledby="jobs-apply-header"]',
        'div[role="dialog"]',
    ),
)

PROGRESS = SelectorStrategy(
    name="progress",
    selectors=(
        '.artdeco-completeness-meter-linear__progress-element',
        'progress',
        '[role="progressbar"]',
        '[aria-valuenow]',
    ),
)

PROGRESS_LABEL = SelectorStrategy(
    name="progress-label",
    selectors=(
        '.jobs-easy-apply-content span[role="note"]',
        '.artdeco-completeness-meter-linear + span',
        '[data-test-progress-label]',
    ),
)

# --- Step controls ---

NEXT_BUTTON = SelectorStrategy(
    name="next",
    selectors=(
        'button[aria-label="Continue to next step"]',
        'button[data-easy-apply-next-button]',
        'button[data-live-test-easy-apply-next-button]',
    ),
    texts=("Next", "Continue"),
)

REVIEW_BUTTON = SelectorStrategy(
    name="review",
    selectors=(
        'button[aria-label="Review your application"]',
        'button[data-live-test-easy-apply-review-button]',
    ),
    texts=("Review", "Review your application"),
)

SUBMIT_BUTTON = SelectorStrategy(
    name="submit",
    selectors=(
        'button[aria-label="Submit application"]',
        'button[data-live-test-easy-apply-submit-button]',
    ),
    texts=("Submit application",),
)

GENERIC_SUBMIT_BUTTON = SelectorStrategy(
    name="single-step-submit",
    selectors=(
        'button[type="submit"]',
        'input[type="submit"]',
    ),
    texts=("Submit", "Apply", "Send application"),
)

DISMISS_BUTTON = SelectorStrategy(
    name="dismiss",
    selectors=(
        'button[aria-label="Dismiss"]',
        'button.artdeco-modal__dismiss',
    ),
)

DONE_BUTTON = SelectorStrategy(
    name="done",
    selectors=(
        'button[data-test-modal-close-btn]',
    ),
    texts=("Done", "Not now"),
)

DISCARD_BUTTON = SelectorStrategy(
    name="discard",
    selectors=(
        'button[data-control-name="discard_application_confirm_btn"]',
        'button[data-test-dialog-primary-btn]',
    ),
    texts=("Discard",),
)

# --- Confirmation signals ---

APPLICATION_SENT_HEADER = SelectorStrategy(
    name="application-sent-header",
    selectors=(
        'h2#post-apply-modal',
        '[data-test-post-apply-modal-header]',
    ),
    texts=("Application sent",),
    text_scope='h1, h2, h3',
)

APPLICATION_SENT_MESSAGE = SelectorStrategy(
    name="application-sent-message",
    selectors=(
        '[data-test-post-apply-modal-message]',
    ),
    texts=("Your application was sent",),
    text_scope='p, span',
)

APPLIED_BADGE = SelectorStrategy(
    name="applied-badge",
    selectors=(
        '.jobs-details-top-card__apply-status',
        '.artdeco-inline-feedback--success',
        '.post-apply-timeline__entity',
    ),
)

SUCCESS_TOAST = SelectorStrategy(
    name="success-toast",
    selectors=(
        '.artdeco-toast-item--visible',
        '.artdeco-toast-item',
    ),
)

# --- Fields ---

FIELDS = SelectorStrategy(
    name="fields",
    selectors=(
        'input:not([type="hidden"]):not([type="submit"]):not([type="button"])'
        ':not([type="file"]):not([type="image"]):not([type="reset"])',
        'select',
        'textarea',
    ),
)

FIELDSETS = SelectorStrategy(
    name="fieldsets",
    selectors=('fieldset',),
)

FIELD_CONTAINER = (
    '.fb-dash-form-element, .jobs-easy-apply-form-element, '
    '.jobs-easy-apply-form-section__grouping, .artdeco-text-input--container, '
    '.artdeco-form__item, .form-group, fieldset'
)

HIDDEN_CONTAINER = '[aria-hidden="true"], [hidden], .hidden, .inactive, .not-displayed'

VALIDATION_ERRORS = SelectorStrategy(
    name="validation-errors",
    selectors=(
        '[id$="-error"]',
        '.artdeco-inline-feedback--error',
        '.artdeco-inline-feedback',
        '.inline-feedback__message',
        '[role="alert"]',
        '.form-error-tooltip',
        '.msg-error',
        '[data-test-error-messages]',
    ),
)

TYPEAHEAD_SUGGESTIONS = SelectorStrategy(
    name="typeahead-suggestions",
    selectors=(
        '.basic-typeahead__triggered-content .basic-typeahead__selectable',
        '.search-basic-typeahead__dropdown [role="option"]',
        '.basic-typeahead__selectable',
        '[role="listbox"] [role="option"]',
    ),
)

RESUME_CARDS = SelectorStrategy(
    name="resume-cards",
    selectors=(
        '.jobs-document-upload-redesign-card__container',
        '.jobs-resume-picker__resume',
    ),
)

RESUME_SELECTED = SelectorStrategy(
    name="resume-selected",
    selectors=(
        '.jobs-document-upload-redesign-card__container--selected',
        '.jobs-resume-picker__resume--selected',
    ),
)

# --- Job search results ---

JOB_CARDS = SelectorStrategy(
    name="job-cards",
    selectors=(
        'li[data-occludable-job-id]',
        'li.jobs-search-results__list-item',
        'li.scaffold-layout__list-item',
        'div.job-card-container',
    ),
)

JOB_CARD_LINK = SelectorStrategy(
    name="job-card-link",
    selectors=(
        '.job-card-job-posting-card-wrapper__card-link',
        'a.job-card-list__title',
        'a.job-card-container__link',
    ),
)

JOB_CARD_TITLE = SelectorStrategy(
    name="job-card-title",
    selectors=('.job-card-list__title', 'h3', 'strong', '[class*="title"]'),
)

JOB_CARD_COMPANY = SelectorStrategy(
    name="job-card-company",
    selectors=('.job-card-container__primary-description', '[class*="company"]', '[class*="subtitle"]'),
)

JOB_CARD_APPLIED = SelectorStrategy(
    name="job-card-applied",
    selectors=(
        '.job-card-container__footer-job-state',
        '.job-card-container__footer-item',
        '.jobs-application-status--applied',
    ),
)

JOB_DETAILS = SelectorStrategy(
    name="job-details",
    selectors=(
        '.jobs-details__main-content',
        '.jobs-search__job-details--container',
        '.job-view-layout',
    ),
)

EASY_APPLY_BUTTON = SelectorStrategy(
    name="easy-apply",
    selectors=(
        '.jobs-apply-button--top-card button',
        'button.jobs-apply-button',
        'button[aria-label*="Easy Apply"]',
    ),
    texts=("Easy Apply",),
)

NEXT_PAGE_BUTTON = SelectorStrategy(
    name="next-page",
    selectors=(
        'button[aria-label="View next page"]',
        '.jobs-search-pagination__button--next',
    ),
    texts=("Next",),
    text_scope='.artdeco-pagination button, .jobs-search-pagination button',
)
