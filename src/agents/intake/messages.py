"""
Message Templates for the Intake Agent

All conversational messages are defined here for easy modification and consistency.
"""

# ---------- Section 1: Entry & Routing ----------
ENTRY = """Hello 👋

Welcome to Dr. Ruchita Mehta  - Clinic & Academy

We are glad you connected 💙

Please let us know how we can support you:

1. Diabetes care
2. Other health concerns like thyroid, obesity
3. Professional certification (Diabetes Coach Program)

Reply with your choice 🙂"""

CHOOSE_REPROMPT = """Reply with 1, 2, or 3 🙂"""

SEND_TEXT = """Please send a text message to continue."""

YES_NO_REPROMPT = """Is this correct? (Yes/No)"""


# ---------- Section 2: Diabetes Care (patients) ----------
DIABETES_INTRO = """Thank you for reaching out 💙

We help patients manage & reverse Diabetes naturally using:

✔ Personalized Nutrition
✔ Lifestyle correction
✔ Root-cause analysis
✔ Medicine reduction support (if applicable)

To understand your case, please share:

• Name
• Age
• Email
• Current Medication (if any)
• Contact Number

Our team will review and guide you for the best consultation plan 🩺"""

PATIENT_DETAILS_REPROMPT = """Please send details in 5 lines:
Name
Age
Email
Current Medication
Contact Number"""

PATIENT_CONFIRM = """Name: {name}
Age: {age}
Email: {email}
Current Medication: {current_medication}
Contact Number : {contact_number}
Is this correct? (Yes/No)"""

PATIENT_RESEND = """Please re-send your 5 details in new lines."""

ASK_DIABETES_TYPE = """Which type of Diabetes?

(Type 1 / Type 2 / Prediabetes / Gestational)"""

ASK_DIABETES_YEARS = """Since how many years?"""

ASK_SUGAR_VALUES = """Latest Fasting & PP sugar values (if available):"""

ASK_PATIENT_GOAL = """What is your main goal right now?
A) Reduce medicines
B) Better sugar control
C) Weight loss
D) Complication prevention
E) All of the above"""

PATIENT_CLOSING = """Based on your details, I’ll personally review your case and suggest the best plan 👩‍⚕️

Choose an option below 👇

🔹 Book 1:1 Call with Dr. Ruchita Mehta
{patient_link}

OR

🔹 Join FREE Diabetes Management Webinar
{diabetes_webinar_link}"""


# ---------- Section 3: Type 1 ----------
TYPE1_INTRO = """Hi 👋

Thank you for reaching out to Dr Ruchita Mehta 🙂
I personally understand Type 1 closely, as I have been managing Type 1 cases since 2012 and have helped many clients achieve more stable sugars and better energy levels with the right nutrition and lifestyle support.

Managing sugars daily can feel overwhelming sometimes, but with the right guidance, stability is possible 🙂

To guide you properly, I need a few quick details 👇

1️⃣ Since how many years diagnosed?
2️⃣ Latest Fasting & PP sugar values
3️⃣ Do you experience frequent sugar highs or lows?
4️⃣ Any symptoms like fatigue, weakness, weight changes or mood swings?"""

TYPE1_DETAILS_REPROMPT = """Please send these 4 details in new lines:
1) Since how many years diagnosed
2) Latest Fasting & PP sugar values
3) Frequent highs/lows
4) Symptoms"""

TYPE1_APPROACH = """Thank you for sharing 🙏
Based on your details, your sugars are currently not very stable, which is common in Type 1 when nutrition timing and lifestyle are not optimized.

My approach focuses on:
✔️ Reducing sugar spikes
✔️ Improving insulin response
✔️ Preventing complications
✔️ Improving daily energy

Would you like to know how we work step by step? 🙂
Type (Yes or No)"""

TYPE1_YES_NO_REPROMPT = """Type Yes or No"""

ASK_TYPE1_FOCUS = """Before I share details, I just want to understand your goal 🙂

What is your main focus right now?
A️⃣ Better sugar control
B️⃣ Reduce fluctuations
C️⃣ Improve energy
D️⃣ Prevent complications
E️⃣ All of the above"""

TYPE1_CLOSING = """Based on your goal, I recommend a personalized consultation where we deeply analyse your case and create a structured plan.

You can book your appointment here 👇

🔗{type1_link}

Let us know once booked, we’ll guide you with the next steps 💙"""


# ---------- Section 4: Other Health Concerns ----------
OTHER_INTRO = """Hi 👋 Thank you for reaching out to Dr. Ruchita Mehta – Clinic & Academy 💙
Before we guide you further, could you please share:

• Name
• Age
• Email
• Current Medication (if any)
• Contact Number
• What health concern are you facing?
• Since how long?

This will help our team understand your case better and suggest the right support for you ✨"""

OTHER_DETAILS_REPROMPT = """Please send details in 7 lines:
Name
Age
Email
Current Medication
Contact Number
Concern
Since how long"""

OTHER_CLOSING = """Thank you for sharing 🙏

For personalised guidance and a detailed plan, we recommend booking a 1:1 consultation with Dr. Ruchita Mehta 👩‍⚕️✨

In the session, you’ll receive:
✔️ Detailed health assessment
✔️ Diet & lifestyle strategy
✔️ Root-cause based plan
✔️ Report analysis

You can book your appointment here 👇
🔗 {other_link}

Let us know once booked, we’ll guide you with the next steps 💙"""


# ---------- Section 5: Professional Certification (students) ----------
STUDENT_INTRO = """Amazing  Our Certified Diabetes Specialist Program is designed for:

• Nutritionists
• Health Coaches
• Doctors
• Fitness Trainers
• Students

Would you like to attend our upcoming FREE WEBINAR

Share Your Details Below to get the details

• Name
• Age
• Email
• WhatsApp Number"""

STUDENT_DETAILS_REPROMPT = """Please send details in 4 lines:
Name
Age
Email
WhatsApp Number"""

STUDENT_CONFIRM = """Name: {name}
Age: {age}
Email: {email}
WhatsApp Number: {contact_number}
Is this correct? (Yes/No)"""

STUDENT_RESEND = """Please re-send your 4 details in new lines."""

ASK_BEST_DESCRIBES = """Great  Which best describes you?

A) Beginner – No diabetes coaching experience
B) Some experience but not confident
C) Already seeing diabetes clients
D) Just exploring"""

ASK_TRAINING_GOAL = """What is your main goal from this training?

A) Become Diabetes Educator
B) Start own practice
C) Increase income
D) Help more patients
E) All of the above"""

ASK_WEBINAR = """Amazing  I am hosting a Free Live Webinar where I will reveal:

The 5 Biggest Gaps – Why you are not getting best results in diabetes cases
The 3D Method I personally use for sugar control
Why sugar is not dropping even after diet & medicines

How to start getting consistent results in your diabetes clients
Would you like to attend this webinar?

Reply YES to get details."""

WEBINAR_REPROMPT = """Reply YES to get details."""

STUDENT_CLOSING = """Here's your webinar link:
{webinar_link}"""


# ---------- Section 6: Follow-ups ----------
PATIENT_FOLLOWUPS = [
    "Follow-up: consultation link {consultation_link}",
    "Webinar link: {diabetes_webinar_link}",
    "Final follow-up: we have your data, we will get back to you soon.",
]

STUDENT_FOLLOWUPS = [
    "Reminder: webinar details are here {webinar_link}",
    "Checking in on your interest. Reply if you need guidance.",
    "Final follow-up: we have your data, we will get back to you soon.",
]


# ---------- General Messages ----------
FALLBACK_REPLY = """Thanks for your message. Our team has your details and will continue this chat with you."""

AI_SYSTEM_PROMPT = (
    "You are assistant for Dr. Ruchita Mehta Clinic & Academy. "
    "Reply briefly, helpful, and professional."
)


# ---------- Helper Functions ----------
def format_message(template: str, **kwargs) -> str:
    """
    Format a message template with provided data

    Missing fields render as empty strings, matching how a half-filled
    record is echoed back to the user.
    """
    defaults = {
        "name": "",
        "age": "",
        "email": "",
        "current_medication": "",
        "contact_number": "",
    }
    data = {**defaults, **kwargs}
    return template.format(**data)
