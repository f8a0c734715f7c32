"""Static registry of monitored admission programs.

The registry is a fixed, immutable table loaded once at import. Each entry
names the program's official information page, the page where candidates
actually apply, and the news search query used to pull secondary coverage.

Several programs share a portal (e.g. UPSC CSE and NDA both apply through
upsconline.nic.in); that is expected, since each program is evaluated on
its own.
"""

from models.program import Program

PROGRAMS: tuple[Program, ...] = (
    # === National Testing Agency (NTA) ===
    Program(
        id="jee-main",
        exam_name="JEE Main",
        official_info_url="https://jeemain.nta.nic.in/",
        official_apply_url="https://examinationservices.nic.in/jeemain",
        feed_query="JEE Main application form last date apply now",
    ),
    Program(
        id="neet-ug",
        exam_name="NEET UG",
        official_info_url="https://neet.nta.nic.in/",
        official_apply_url="https://examinationservices.nic.in/neet",
        feed_query="NEET UG application form last date apply now",
    ),
    Program(
        id="cuet-ug",
        exam_name="CUET UG",
        official_info_url="https://cuet.nta.nic.in/",
        official_apply_url="https://examinationservices.nic.in/cuet",
        feed_query="CUET UG application form last date apply now",
    ),

    # === Engineering entrance (institute / state bodies) ===
    Program(
        id="jee-advanced",
        exam_name="JEE Advanced",
        official_info_url="https://jeeadv.ac.in/",
        official_apply_url="https://jeeadv.ac.in/",
        feed_query="JEE Advanced application form registration last date",
    ),
    Program(
        id="viteee",
        exam_name="VITEEE",
        official_info_url="https://viteee.vit.ac.in/",
        official_apply_url="https://viteee.vit.ac.in/",
        feed_query="VITEEE application form last date apply now",
    ),
    Program(
        id="bitsat",
        exam_name="BITSAT",
        official_info_url="https://www.bitsadmission.com/",
        official_apply_url="https://www.bitsadmission.com/",
        feed_query="BITSAT application form last date apply now",
    ),
    Program(
        id="wbjee",
        exam_name="WBJEE",
        official_info_url="https://wbjeeb.nic.in/",
        official_apply_url="https://wbjeeb.nic.in/",
        feed_query="WBJEE application form last date apply now",
    ),
    Program(
        id="comedk-uget",
        exam_name="COMEDK UGET",
        official_info_url="https://www.comedk.org/",
        official_apply_url="https://www.comedk.org/",
        feed_query="COMEDK UGET application form last date apply now",
    ),
    Program(
        id="srmjeee",
        exam_name="SRMJEEE",
        official_info_url="https://applications.srmist.edu.in/",
        official_apply_url="https://applications.srmist.edu.in/",
        feed_query="SRMJEEE application form last date apply now",
    ),
    Program(
        id="met-manipal",
        exam_name="MET (Manipal)",
        official_info_url="https://manipal.edu/mu/admission.html",
        official_apply_url="https://apply.manipal.edu/",
        feed_query="Manipal MET application form last date apply now",
    ),

    # === Government recruitment ===
    Program(
        id="upsc-cse",
        exam_name="UPSC CSE",
        official_info_url="https://www.upsc.gov.in/",
        official_apply_url="https://upsconline.nic.in/",
        feed_query="UPSC CSE application form last date apply now",
    ),
    Program(
        id="ssc-cgl",
        exam_name="SSC CGL",
        official_info_url="https://ssc.gov.in/",
        official_apply_url="https://ssc.gov.in/",
        feed_query="SSC CGL application form last date apply now",
    ),
    Program(
        id="ibps-po",
        exam_name="IBPS PO",
        official_info_url="https://www.ibps.in/",
        official_apply_url="https://www.ibps.in/",
        feed_query="IBPS PO application form last date apply now",
    ),
    Program(
        id="nda",
        exam_name="NDA",
        official_info_url="https://www.upsc.gov.in/",
        official_apply_url="https://upsconline.nic.in/",
        feed_query="NDA application form last date apply now",
    ),
)


def get_program(program_id: str) -> Program | None:
    """Look up a registered program by id."""
    for program in PROGRAMS:
        if program.id == program_id:
            return program
    return None


def select_programs(program_ids: list[str] | None = None) -> tuple[Program, ...]:
    """Return the registered programs, optionally restricted to some ids.

    Args:
        program_ids: Ids to keep, in registry order. None or empty keeps all.

    Raises:
        KeyError: If an id is not registered
    """
    if not program_ids:
        return PROGRAMS
    unknown = [pid for pid in program_ids if get_program(pid) is None]
    if unknown:
        raise KeyError(f"Unknown program id(s): {', '.join(unknown)}")
    wanted = set(program_ids)
    return tuple(p for p in PROGRAMS if p.id in wanted)
