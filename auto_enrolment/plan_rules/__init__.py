"""
Plan rules package: staging dates, enrolment dates, eligibility (with director
exclusions, insurance-class checks and variable earnings), contributions and
the opt-out / re-enrolment tracker.
"""
