# Display names of shell folder class and known folder identifiers found in root folder and delegate shell items
DESCRIPTIONS = {
    "031e4825-7b94-4dc3-b131-e946b44c8dd5": "Libraries",
    "088e3905-0323-4b02-9826-5d99428e115f": "Downloads",
    "208d2c60-3aea-1069-a2d7-08002b30309d": "My Network Places",
    "20d04fe0-3aea-1069-a2d8-08002b30309d": "My Computer",
    "21ec2020-3aea-1069-a2dd-08002b30309d": "Control Panel",
    "24ad3ad4-a569-4530-98e1-ab02f9417aa8": "Pictures",
    "26ee0668-a00a-44d7-9371-beb064c98683": "Control Panel",
    "374de290-123f-4565-9164-39c4925e467b": "Downloads",
    "3dfdf296-dbec-4fb4-81d1-6a3438bcf4de": "Music",
    "450d8fba-ad25-11d0-98a8-0800361b1103": "My Documents",
    "59031a47-3f72-44a7-89c5-5595fe6b30ee": "Users",
    "645ff040-5081-101b-9f08-00aa002f954e": "Recycle Bin",
    "679f85cb-0220-4080-b29b-5540cc05aab6": "Quick access",
    "871c5380-42a0-1069-a2ea-08002b30309d": "Internet Explorer",
    "b4bfcc3a-db2c-424c-b029-7fe99a87c641": "Desktop",
    "d3162b92-9365-467a-956b-92703aca08af": "Documents",
    "f02c1a0d-be21-4350-88b0-7367fc96ef3c": "Network",
    "f86fa3ab-70d2-4fc7-9c99-fcbf05467f3a": "Videos",
    "fdd39ad0-238f-46af-adb4-6c85480369c7": "Documents",
}
