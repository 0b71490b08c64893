import json
import uuid
import random
from cryptography.fernet import Fernet

from carenotes.seed import load_or_create_key

# --- Configuration ---
OUTPUT_FILE = 'carenotes/seed.json'
KEY_FILE = 'carenotes/secret.key'

# --- Helpers ---
def generate_id():
    return str(uuid.uuid4())

# --- Scenarios ---
# One organisation per entry, each with a couple of teams, a handful of
# clients per team and one or two episodes of care per client.

organisations = [
    {
        "name": "Northside Community Health",
        "teams": ["Community Mental Health", "District Nursing"],
    },
    {
        "name": "Riverside Primary Care Network",
        "teams": ["Respiratory Clinic", "Diabetes Service"],
    },
]

client_names = [
    "Client A. Morgan", "Client B. Okafor", "Client C. Novak", "Client D. Haddad",
    "Client E. Lindqvist", "Client F. Tanaka", "Client G. Moreau", "Client H. Silva",
]

episode_names = ["Initial assessment", "Follow-up", "Discharge planning", "Crisis review"]

note_templates = [
    ("Triage completed. Vitals within normal range. Plan: review in 2 weeks.", ["triage"]),
    ("Medication reviewed with client. No adverse effects reported.", ["medication", "review"]),
    ("Client reports improved sleep and appetite since last visit.", ["progress"]),
    ("Safeguarding concern discussed with team lead. Actions agreed.", ["safeguarding", "urgent"]),
    ("Referral sent to physiotherapy. Awaiting appointment.", ["referral"]),
    ("Team huddle: caseload reviewed, two clients flagged for follow-up.", ["team"]),
]

# --- Build Seed ---
seed = {"organisations": [], "teams": [], "clients": [], "episodes": [], "notes": []}
client_pool = list(client_names)
random.shuffle(client_pool)

def add_notes(node_id, count):
    for content, tags in random.sample(note_templates, count):
        seed["notes"].append({
            "id": generate_id(),
            "content": content,
            "attached_to_id": node_id,
            "tags": tags
        })

for org in organisations:
    org_id = generate_id()
    seed["organisations"].append({"id": org_id, "name": org["name"]})

    for team_name in org["teams"]:
        team_id = generate_id()
        seed["teams"].append({"id": team_id, "name": team_name, "parent_id": org_id})
        add_notes(team_id, 1)

        for _ in range(2):
            client_id = generate_id()
            name = client_pool.pop() if client_pool else f"Client {client_id[:8]}"
            seed["clients"].append({"id": client_id, "name": name, "parent_id": team_id})

            for episode_name in random.sample(episode_names, random.randint(1, 2)):
                episode_id = generate_id()
                seed["episodes"].append({"id": episode_id, "name": episode_name, "parent_id": client_id})
                add_notes(episode_id, random.randint(1, 3))

# --- Save & Encrypt ---
json_data = json.dumps(seed, indent=2).encode('utf-8')

cipher = Fernet(load_or_create_key(KEY_FILE))
encrypted_data = cipher.encrypt(json_data)

with open(OUTPUT_FILE, 'wb') as f:
    f.write(encrypted_data)

print(f"Successfully generated {len(seed['organisations'])} organisations, "
      f"{len(seed['teams'])} teams, {len(seed['clients'])} clients, "
      f"{len(seed['episodes'])} episodes and {len(seed['notes'])} notes.")
print(f"Data saved to {OUTPUT_FILE} (Encrypted). Import with: flask --app carenotes.app seed")
