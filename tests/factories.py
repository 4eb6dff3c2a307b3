import io

from fastapi import UploadFile
from starlette.datastructures import Headers

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 64
PDF_BYTES = b"%PDF-1.4\n%test certificate\n" + b"0" * 64


VALID_FIELDS = {
    "birth_certificate": {
        "financialYear": "2024-25",
        "childName": "Aarav Patil",
        "dateOfBirth": "15-08-2023",
        "placeOfBirth": "Vathode",
        "gender": "Male",
        "fatherName": "Sunil Patil",
        "motherName": "Meena Patil",
        "permanentAddressParent": "Ward 3, Vathode",
        "applicantFullNameEnglish": "Sunil Patil",
        "applicantFullNameDevanagari": "सुनील पाटील",
        "whatsappNumber": "9876543210",
        "email": "sunil@example.com",
        "address": "Ward 3, Vathode",
        "utrNumber": "UTR123456789",
    },
    "death_certificate": {
        "financialYear": "2024-25",
        "nameOfDeceased": "Ramesh Jadhav",
        "aadhaarNumber": "123412341234",
        "address": "Ward 1, Vathode",
        "dateOfDeath": "2024-01-10",
        "timeOfDeath": "10:30",
        "causeOfDeath": "Natural",
        "applicantFullNameEnglish": "Suresh Jadhav",
        "applicantFullNameDevanagari": "सुरेश जाधव",
        "whatsappNumber": "9123456780",
        "paymentOption": "UPI",
        "utrNumber": "UTR000111222",
    },
    "marriage_certificate": {
        "dateOfMarriage": "12-05-2022",
        "placeOfMarriage": "Shirpur",
        "HusbandName": "Vikas More",
        "HusbandAge": "27",
        "HusbandFatherName": "Anil More",
        "wifeName": "Pooja Shinde",
        "wifeAge": "24",
        "wifeFatherName": "Ganesh Shinde",
        "utrNumber": "UTR555666777",
    },
    "taxation": {
        "financialYear": "2024-25",
        "applicantName": "Kiran Pawar",
        "mobileNumber": "9988776655",
        "taxPayerNumber": "TP-1002",
        "address": "Ward 2, Vathode",
        "utrNumber": "UTR777888999",
    },
    "no_outstanding_debts": {
        "financialYear": "2024-25",
        "propertyOwnerName": "Kiran Pawar",
        "aadhaarCardNumber": "567856785678",
        "whatsappNumber": "9988776655",
        "villageName": "Vathode",
        "wardNo": "2",
        "streetNameNumber": "Main Road 4",
        "propertyNumber": "P-221",
        "applicantFullNameEnglish": "Kiran Pawar",
        "applicantAadhaarNumber": "567856785678",
        "utrNumber": "UTR123123123",
        "paymentOption": "UPI",
    },
    "housing_assessment_8": {
        "financialYear": "2024-25",
        "applicantName": "Kiran Pawar",
        "whatsappNumber": "9988776655",
        "utrNumber": "UTR321321321",
        "propertyNo": "P-221",
        "propertyName": "Pawar Niwas",
        "occupantName": "Kiran Pawar",
        "lengthInFeet": "40",
        "heightInFeet": "30",
        "totalAreaSqFt": "1200",
    },
    "bpl_certificate": {
        "financialYear": "2024-25",
        "applicantName": "Sita Bhil",
        "aadhaarNumber": "111122223333",
        "address": "Ward 5, Vathode",
        "taluka": "Shirpur",
        "district": "Dhule",
        "whatsappNumber": "9000000001",
        "utrNumber": "UTR999000111",
        "bplYear": "2011",
        "bplListSerialNo": "245",
    },
    "niradhar_certificate": {
        "financialYear": "2024-25",
        "applicantName": "Sita Bhil",
        "aadhaarNumber": "111122223333",
        "whatsappNumber": "9000000001",
        "utrNumber": "UTR999000222",
        "grampanchayatName": "Vathode",
        "taluka": "Shirpur",
        "district": "Dhule",
    },
}


def make_upload(filename: str, content: bytes, content_type: str) -> UploadFile:
    return UploadFile(file=io.BytesIO(content), filename=filename, headers=Headers({"content-type": content_type}))


def receipt_upload(filename: str = "receipt.png") -> UploadFile:
    return make_upload(filename, PNG_BYTES, "image/png")


class FakeBucket:
    def __init__(self, store, name):
        self.store = store
        self.name = name

    def upload(self, path, file, file_options=None):
        if self.store.fail_uploads > 0:
            self.store.fail_uploads -= 1
            raise RuntimeError("storage temporarily unavailable")
        if path in self.store.objects:
            raise RuntimeError("The resource already exists")
        self.store.objects[path] = {"content": file, "options": file_options}
        return {"Key": f"{self.name}/{path}"}

    def move(self, from_path, to_path):
        if from_path in self.store.fail_moves:
            raise RuntimeError("move failed")
        self.store.objects[to_path] = self.store.objects.pop(from_path)
        self.store.moves.append((from_path, to_path))
        return {"message": "Successfully moved"}

    def create_signed_url(self, path, expires_in, options=None):
        self.store.signed.append((path, expires_in))
        return {"signedURL": f"https://storage.test/{path}?token=t{len(self.store.signed)}&expires={expires_in}"}

    def list(self, path=None, options=None):
        prefix = f"{path}/"
        return [
            {"name": key[len(prefix):], "metadata": {"size": len(obj["content"]), "mimetype": "image/png"}, "created_at": "2024-01-01T00:00:00Z"}
            for key, obj in self.store.objects.items()
            if key.startswith(prefix)
        ]

    def remove(self, paths):
        for path in paths:
            self.store.objects.pop(path, None)
        return [{"name": p} for p in paths]


class FakeSupabase:
    """In-memory stand-in for the Supabase storage client."""

    def __init__(self):
        self.objects = {}
        self.moves = []
        self.signed = []
        self.fail_uploads = 0
        self.fail_moves = set()

    @property
    def storage(self):
        return self

    def from_(self, bucket):
        return FakeBucket(self, bucket)

    def create_bucket(self, id, name=None, options=None):
        raise RuntimeError("The resource already exists")


def as_requester(user) -> dict:
    return {"id": str(user.id), "email": user.email, "full_name": user.full_name, "role": user.role.value}
